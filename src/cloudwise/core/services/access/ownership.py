"""Role and resource ownership gates."""

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from cloudwise.core.errors import AuthorizationError, InternalError
from cloudwise.entities.core.user import User, UserRole
from cloudwise.entities.service.account import (
    CloudProvider,
    OwnedAccount,
    OwnedAccountRepository,
)


def check_role(user: User, required_role: UserRole = UserRole.ADMIN) -> None:
    """Raise AuthorizationError unless ``user`` carries ``required_role``."""
    if user.role != required_role:
        raise AuthorizationError(f"Forbidden: {required_role.value} access required")


class OwnershipService:
    """Confirms the caller owns one provider's account before a handler runs."""

    def __init__(self, provider: CloudProvider | str):
        # unknown tags are a wiring mistake: fail at construction, not per request
        self._provider = CloudProvider(provider)

    @property
    def provider(self) -> CloudProvider:
        return self._provider

    def check_access(self, db_session: Session, account_id: str, user: User) -> OwnedAccount:
        """Return the account if ``user`` owns it.

        A foreign or missing account both yield AuthorizationError so the
        response never reveals whether another tenant's account exists.
        """
        try:
            account = OwnedAccountRepository(db_session, self._provider).get_owned(
                account_id, user.id
            )
        except SQLAlchemyError as exc:
            db_session.rollback()
            raise InternalError(
                f"Error checking {self._provider.value} account access: {exc}"
            ) from exc

        if account is None:
            raise AuthorizationError("Forbidden: You do not have access to this account")
        return account
