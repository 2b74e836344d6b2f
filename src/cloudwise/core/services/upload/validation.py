"""Upload validation boundary: MIME allow-list and size limit."""

from dataclasses import dataclass
from pathlib import PurePath
from uuid import uuid4

from fastapi import UploadFile

from cloudwise.core.errors import BadRequestError
from cloudwise.runtime.context import get_config

_CHUNK = 64 * 1024


@dataclass(frozen=True)
class ValidatedUpload:
    filename: str
    stored_name: str
    content_type: str
    size: int
    content: bytes


async def validate_upload(file: UploadFile) -> ValidatedUpload:
    """Read ``file`` while enforcing the configured type and size limits.

    Raises:
        BadRequestError: disallowed MIME type or file larger than the limit.
    """
    cfg = get_config().upload

    if file.content_type not in cfg.allowed_mime_types:
        raise BadRequestError(
            "Invalid file type. Only images, PDFs, and documents are allowed."
        )

    limit = cfg.max_size_bytes
    chunks: list[bytes] = []
    size = 0
    while chunk := await file.read(_CHUNK):
        size += len(chunk)
        if size > limit:
            raise BadRequestError(
                f"File too large. Maximum size is {limit // (1024 * 1024)}MB."
            )
        chunks.append(chunk)

    original = file.filename or "upload"
    return ValidatedUpload(
        filename=original,
        stored_name=f"{uuid4()}{PurePath(original).suffix}",
        content_type=file.content_type,
        size=size,
        content=b"".join(chunks),
    )
