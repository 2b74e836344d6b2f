"""User database table model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field

from cloudwise.entities.core._base import EntityTable
from cloudwise.entities.core.user.entity import UserRole


class UserTable(EntityTable, table=True):
    """Database persistence model for users.

    The unique constraint on ``auth0_id`` is what keeps concurrent
    first-sight provisioning from creating duplicate identities.
    """

    auth0_id: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True, index=True)
    )
    email: str = Field(default="", sa_column=Column(String(320), nullable=False, default=""))
    first_name: str = ""
    last_name: str = ""
    picture: str = ""
    profile_picture: str = ""
    role: str = Field(
        default=UserRole.USER.value,
        sa_column=Column(String(16), nullable=False, default=UserRole.USER.value),
    )
    last_login: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
