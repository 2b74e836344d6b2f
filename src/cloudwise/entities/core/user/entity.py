"""User domain entity."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from cloudwise.entities.core._base import Entity


class UserRole(str, Enum):
    """Role carried by an identity. ``admin`` is the privileged one."""

    ADMIN = "admin"
    USER = "user"


class User(Entity):
    """Locally known principal, keyed by the identity provider subject.

    Optional profile fields are never absent: they default to empty strings.
    """

    auth0_id: str = Field(description="Identity provider subject identifier")
    email: str = Field(default="", description="User's email address")
    first_name: str = Field(default="", description="User's first name")
    last_name: str = Field(default="", description="User's last name")
    picture: str = Field(default="", description="Identity provider picture URL")
    profile_picture: str = Field(default="", description="Uploaded profile picture reference")
    role: UserRole = Field(default=UserRole.USER, description="Authorization role")
    last_login: datetime | None = Field(
        default=None, description="Last successful authentication"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __eq__(self, other: Any) -> bool:
        """Compare users by identity attributes, ignoring timestamps."""
        if not isinstance(other, User):
            return False

        return (
            self.id == other.id
            and self.auth0_id == other.auth0_id
            and self.email == other.email
            and self.first_name == other.first_name
            and self.last_name == other.last_name
            and self.role == other.role
        )

    def __hash__(self) -> int:
        return hash((self.id, self.auth0_id))
