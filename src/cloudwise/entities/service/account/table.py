"""Cloud account database table models."""

from datetime import datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field

from cloudwise.entities.core._base import EntityTable
from cloudwise.entities.service.account.entity import AccountStatus


class OwnedAccountTable(EntityTable, table=False):
    """Columns shared by every provider's account table."""

    user_id: str = Field(foreign_key="usertable.id", index=True)
    name: str
    status: str = AccountStatus.PENDING.value
    last_sync: datetime | None = Field(
        default=None, sa_type=DateTime(timezone=True), nullable=True
    )
    error_message: str | None = None


class AwsAccountTable(OwnedAccountTable, table=True):
    __table_args__ = (UniqueConstraint("user_id", "account_id", name="uq_aws_user_account"),)

    account_id: str
    role_arn: str | None = None
    region: str = "us-east-1"


class AzureAccountTable(OwnedAccountTable, table=True):
    tenant_id: str
    subscription_id: str


class GcpAccountTable(OwnedAccountTable, table=True):
    project_id: str
