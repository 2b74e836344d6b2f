"""Verified token claims."""

import time
from typing import Any

from pydantic import BaseModel, Field


class VerifiedTokenClaims(BaseModel):
    """Decoded, signature-checked payload of a bearer credential.

    Issuer and audience have already been checked when an instance exists.
    Optional profile claims are never None: absent claims become empty strings.
    """

    raw_token: str = Field(default="", repr=False, description="Original JWT token")

    issuer: str = Field(description="Issuer")
    subject: str = Field(description="Subject (external identity id)")
    audience: str | list[str] = Field(description="Audience")
    expires_at: int = Field(description="Expiration time")
    issued_at: int | None = Field(default=None, description="Issued at")

    email: str = Field(default="", description="Email address")
    given_name: str = Field(default="", description="First name")
    family_name: str = Field(default="", description="Last name")
    picture: str = Field(default="", description="Profile picture URL")

    custom_claims: dict[str, Any] = Field(
        default_factory=dict, description="Claims not mapped onto a field"
    )

    def is_expired(self, clock_skew: int = 60) -> bool:
        """Check if token is expired with clock skew tolerance."""
        return time.time() > self.expires_at + clock_skew
