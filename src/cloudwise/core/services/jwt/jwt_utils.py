import base64
import json
from dataclasses import dataclass
from typing import Any, Final

from cloudwise.core.errors import AuthenticationError
from cloudwise.core.models.claims import VerifiedTokenClaims

# ---------------- tunables ----------------
MAX_JWT_CHARS: Final = 8192
MAX_SEGMENT_CHARS: Final = 8192
MAX_HEADER_BYTES: Final = 8 * 1024
MAX_PAYLOAD_BYTES: Final = 64 * 1024
_ALLOWED: Final = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_."
)  # no '='

_PROFILE_CLAIMS: Final = ("email", "given_name", "family_name", "picture")
_REGISTERED_CLAIMS: Final = ("iss", "sub", "aud", "exp", "iat", "nbf", "jti")


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the credential of an ``Authorization: Bearer`` header, if any."""
    if not authorization:
        return None
    scheme, _, credential = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credential.strip() or None


# --------------- one-pass prefilter ---------------
def _prefilter_compact_jwt(token: str) -> tuple[str, str, str]:
    if not token or len(token) > MAX_JWT_CHARS:
        raise AuthenticationError("Invalid JWT size")
    first = second = -1
    for i, ch in enumerate(token):
        if ch not in _ALLOWED:
            raise AuthenticationError("Invalid JWT characters")
        if ch == ".":
            if first < 0:
                first = i
            elif second < 0:
                second = i
            else:  # third dot
                raise AuthenticationError("Invalid JWT format")
    # require exactly two dots and non-empty segments
    if first <= 0 or second - first <= 1 or second >= len(token) - 1:
        raise AuthenticationError("Invalid JWT format")
    h, p, s = token[:first], token[first + 1 : second], token[second + 1 :]
    if max(len(h), len(p), len(s)) > MAX_SEGMENT_CHARS:
        raise AuthenticationError("Invalid JWT segment size")
    return h, p, s


def _b64url_decode_unpadded(seg: str, what: str, max_bytes: int) -> bytes:
    pad = (-len(seg)) % 4
    try:
        raw = base64.urlsafe_b64decode((seg + "=" * pad).encode("ascii"))
    except (ValueError, UnicodeEncodeError) as e:
        raise AuthenticationError(f"Invalid base64url in {what}") from e
    if len(raw) > max_bytes:
        raise AuthenticationError(f"{what} too large")
    return raw


def _decode_json_object(raw: bytes, what: str) -> dict[str, Any]:
    try:
        obj = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise AuthenticationError(f"Non-UTF8 {what}") from e
    except json.JSONDecodeError as e:
        raise AuthenticationError(f"Invalid JSON in {what}") from e
    if not isinstance(obj, dict):
        raise AuthenticationError(f"{what} must be a JSON object")
    return obj


@dataclass(frozen=True)
class JwtPreview:
    header: dict[str, Any]
    claims: dict[str, Any]
    alg: str | None
    kid: str | None


def preview_jwt(token: str) -> JwtPreview:
    """Split and decode header+payload exactly once. Nothing here is trusted."""
    h_seg, p_seg, _ = _prefilter_compact_jwt(token)
    header = _decode_json_object(
        _b64url_decode_unpadded(h_seg, "JWT header", MAX_HEADER_BYTES), "JWT header"
    )
    claims = _decode_json_object(
        _b64url_decode_unpadded(p_seg, "JWT payload", MAX_PAYLOAD_BYTES), "JWT payload"
    )
    alg = header.get("alg")
    kid = header.get("kid")
    return JwtPreview(
        header=header,
        claims=claims,
        alg=alg if isinstance(alg, str) else None,
        kid=kid if isinstance(kid, str) else None,
    )


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def create_verified_claims(token: str, claims: dict[str, Any]) -> VerifiedTokenClaims:
    """Map verified JWT claims onto VerifiedTokenClaims.

    Optional profile claims default to empty strings, never None.
    """
    custom = {
        k: v
        for k, v in claims.items()
        if k not in _REGISTERED_CLAIMS and k not in _PROFILE_CLAIMS
    }
    return VerifiedTokenClaims(
        raw_token=token,
        issuer=claims["iss"],
        subject=claims["sub"],
        audience=claims["aud"],
        expires_at=int(claims["exp"]),
        issued_at=int(claims["iat"]) if claims.get("iat") is not None else None,
        email=_as_str(claims.get("email")),
        given_name=_as_str(claims.get("given_name")),
        family_name=_as_str(claims.get("family_name")),
        picture=_as_str(claims.get("picture")),
        custom_claims=custom,
    )
