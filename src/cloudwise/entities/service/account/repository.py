"""Owned account repository, parameterized by provider tag."""

from typing import Any, NoReturn

from sqlmodel import Session, select

from cloudwise.entities.service.account.entity import (
    AwsAccount,
    AzureAccount,
    CloudProvider,
    GcpAccount,
    OwnedAccount,
)
from cloudwise.entities.service.account.table import (
    AwsAccountTable,
    AzureAccountTable,
    GcpAccountTable,
    OwnedAccountTable,
)


def _assert_never(value: NoReturn) -> NoReturn:
    raise ValueError(f"Unknown cloud provider: {value!r}")


def account_models(
    provider: CloudProvider,
) -> tuple[type[OwnedAccountTable], type[OwnedAccount]]:
    """Return the (table, entity) pair for a provider tag.

    An unknown tag is a programming error and raises ValueError.
    """
    match provider:
        case CloudProvider.AWS:
            return AwsAccountTable, AwsAccount
        case CloudProvider.AZURE:
            return AzureAccountTable, AzureAccount
        case CloudProvider.GCP:
            return GcpAccountTable, GcpAccount
        case _:
            _assert_never(provider)


class OwnedAccountRepository:
    """Data-access layer for one provider's accounts."""

    def __init__(self, session: Session, provider: CloudProvider) -> None:
        self._session = session
        self._provider = provider
        self._table, self._entity = account_models(provider)

    @property
    def provider(self) -> CloudProvider:
        return self._provider

    def _to_entity(self, row: Any) -> OwnedAccount:
        return self._entity.model_validate(row, from_attributes=True)

    def get_owned(self, account_id: str, user_id: str) -> OwnedAccount | None:
        """Look up an account by id, visible only to its owner."""
        statement = select(self._table).where(
            (self._table.id == account_id) & (self._table.user_id == user_id)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return self._to_entity(row)

    def list_owned(self, user_id: str) -> list[OwnedAccount]:
        statement = (
            select(self._table)
            .where(self._table.user_id == user_id)
            .order_by(self._table.created_at)
        )
        return [self._to_entity(row) for row in self._session.exec(statement).all()]

    def create(self, account: OwnedAccount) -> OwnedAccount:
        if not isinstance(account, self._entity):
            raise TypeError(
                f"{type(account).__name__} is not a {self._provider.value} account"
            )
        data = account.model_dump()
        data["status"] = account.status.value
        row = self._table.model_validate(data)
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        return self._to_entity(row)
