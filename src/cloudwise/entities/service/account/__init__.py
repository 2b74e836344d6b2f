"""Cloud account entity package."""

from .entity import (
    AccountStatus,
    AwsAccount,
    AzureAccount,
    CloudProvider,
    GcpAccount,
    OwnedAccount,
)
from .repository import OwnedAccountRepository, account_models
from .table import AwsAccountTable, AzureAccountTable, GcpAccountTable

__all__ = [
    "AccountStatus",
    "AwsAccount",
    "AwsAccountTable",
    "AzureAccount",
    "AzureAccountTable",
    "CloudProvider",
    "GcpAccount",
    "GcpAccountTable",
    "OwnedAccount",
    "OwnedAccountRepository",
    "account_models",
]
