"""Authenticated profile endpoints."""

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from cloudwise.api.http.deps import get_current_user
from cloudwise.core.services import validate_upload
from cloudwise.entities.core.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


class UploadAccepted(BaseModel):
    filename: str
    stored_name: str
    content_type: str
    size: int


@router.get("/profile", response_model=User)
async def get_profile(user: User = Depends(get_current_user)) -> User:
    """Return the resolved identity of the caller."""
    return user


@router.post("/profile-picture", response_model=UploadAccepted)
async def upload_profile_picture(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
) -> UploadAccepted:
    """Validate a profile picture upload and report what was accepted."""
    upload = await validate_upload(file)
    return UploadAccepted(
        filename=upload.filename,
        stored_name=upload.stored_name,
        content_type=upload.content_type,
        size=upload.size,
    )
