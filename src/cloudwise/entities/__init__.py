"""Entities module with entity-centric structure.

Each entity package contains:
- entity.py: Domain model
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.user import User, UserRepository, UserRole, UserTable
from .service.account import (
    AwsAccount,
    AwsAccountTable,
    AzureAccount,
    AzureAccountTable,
    CloudProvider,
    GcpAccount,
    GcpAccountTable,
    OwnedAccount,
    OwnedAccountRepository,
)

__all__ = [
    "AwsAccount",
    "AwsAccountTable",
    "AzureAccount",
    "AzureAccountTable",
    "CloudProvider",
    "GcpAccount",
    "GcpAccountTable",
    "OwnedAccount",
    "OwnedAccountRepository",
    "User",
    "UserRepository",
    "UserRole",
    "UserTable",
]
