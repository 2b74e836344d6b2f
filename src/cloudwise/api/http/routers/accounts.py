"""Per-provider cloud account endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlmodel import Session

from cloudwise.api.http.deps import (
    get_current_user,
    get_db_session,
    require_account_access,
)
from cloudwise.entities.core.user import User
from cloudwise.entities.service.account import (
    CloudProvider,
    OwnedAccount,
    OwnedAccountRepository,
)


def _serialize(account: OwnedAccount) -> dict[str, Any]:
    return {"provider": account.provider.value, **account.model_dump(mode="json")}


def build_account_router(provider: CloudProvider) -> APIRouter:
    """Build the account router for one provider, guarded by its ownership gate."""
    router = APIRouter(prefix=f"/api/{provider.value}", tags=[provider.value])
    owned_account = require_account_access(provider)

    @router.get("/accounts")
    def list_accounts(
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db_session),
    ) -> list[dict[str, Any]]:
        """List the caller's accounts for this provider."""
        accounts = OwnedAccountRepository(db, provider).list_owned(user.id)
        return [_serialize(account) for account in accounts]

    @router.get("/accounts/{account_id}")
    def get_account(
        account: OwnedAccount = Depends(owned_account),
    ) -> dict[str, Any]:
        """Return an account the caller owns."""
        return _serialize(account)

    return router


routers = [build_account_router(provider) for provider in CloudProvider]
