"""Cloud account entities: the owned resources behind the ownership gate."""

from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import Field

from cloudwise.entities.core._base import Entity


class CloudProvider(str, Enum):
    """Provider tag selecting which owned-account variant to look up."""

    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"


class AccountStatus(str, Enum):
    CONNECTED = "connected"
    ERROR = "error"
    PENDING = "pending"


class OwnedAccount(Entity):
    """Tenant-scoped reference to an external cloud account.

    Visible to a caller only when ``user_id`` is the caller's identity id.
    """

    user_id: str = Field(description="Owning identity")
    name: str = Field(description="Display name")
    status: AccountStatus = Field(default=AccountStatus.PENDING)
    last_sync: datetime | None = None
    error_message: str | None = None

    provider: ClassVar[CloudProvider]


class AwsAccount(OwnedAccount):
    provider: ClassVar[CloudProvider] = CloudProvider.AWS

    account_id: str = Field(description="12-digit AWS account id")
    role_arn: str | None = None
    region: str = "us-east-1"


class AzureAccount(OwnedAccount):
    provider: ClassVar[CloudProvider] = CloudProvider.AZURE

    tenant_id: str = Field(description="Azure AD tenant id")
    subscription_id: str = Field(description="Azure subscription id")


class GcpAccount(OwnedAccount):
    provider: ClassVar[CloudProvider] = CloudProvider.GCP

    project_id: str = Field(description="GCP project id")
