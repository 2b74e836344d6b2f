from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from cloudwise.core.errors import AuthorizationError, InternalError
from cloudwise.core.services import OwnershipService, check_role
from cloudwise.entities.core.user import UserRole
from cloudwise.entities.service.account import (
    AwsAccount,
    AzureAccount,
    CloudProvider,
    GcpAccount,
    OwnedAccountRepository,
)


@pytest.fixture
def owner(user_factory):
    return user_factory(auth0_id="auth0|owner")


@pytest.fixture
def stranger(user_factory):
    return user_factory(auth0_id="auth0|stranger")


@pytest.fixture
def aws_account(session, owner):
    return OwnedAccountRepository(session, CloudProvider.AWS).create(
        AwsAccount(user_id=owner.id, name="production", account_id="123456789012")
    )


class TestRoleGate:
    def test_admin_passes(self, user_factory):
        check_role(user_factory(auth0_id="auth0|root", role=UserRole.ADMIN), UserRole.ADMIN)

    def test_plain_user_is_forbidden(self, user_factory):
        user = user_factory(auth0_id="auth0|plain")

        with pytest.raises(AuthorizationError) as exc_info:
            check_role(user, UserRole.ADMIN)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Forbidden: admin access required"


class TestOwnershipGate:
    """Per-provider ownership checks."""

    def test_owner_gets_account(self, session, owner, aws_account):
        account = OwnershipService("aws").check_access(session, aws_account.id, owner)

        assert account.id == aws_account.id
        assert isinstance(account, AwsAccount)
        assert account.account_id == "123456789012"

    def test_foreign_account_is_forbidden(self, session, stranger, aws_account):
        with pytest.raises(AuthorizationError) as exc_info:
            OwnershipService(CloudProvider.AWS).check_access(session, aws_account.id, stranger)

        assert exc_info.value.message == "Forbidden: You do not have access to this account"

    def test_missing_account_looks_like_foreign_account(self, session, owner):
        with pytest.raises(AuthorizationError) as exc_info:
            OwnershipService("aws").check_access(session, "does-not-exist", owner)

        assert exc_info.value.message == "Forbidden: You do not have access to this account"

    def test_provider_tags_are_not_interchangeable(self, session, owner, aws_account):
        with pytest.raises(AuthorizationError):
            OwnershipService("gcp").check_access(session, aws_account.id, owner)

    @pytest.mark.parametrize(
        ("provider", "account"),
        [
            ("azure", lambda uid: AzureAccount(user_id=uid, name="corp", tenant_id="t-1", subscription_id="s-1")),
            ("gcp", lambda uid: GcpAccount(user_id=uid, name="analytics", project_id="analytics-42")),
        ],
    )
    def test_each_provider_checks_its_own_table(self, session, owner, stranger, provider, account):
        created = OwnedAccountRepository(session, CloudProvider(provider)).create(account(owner.id))
        gate = OwnershipService(provider)

        assert gate.check_access(session, created.id, owner).id == created.id
        with pytest.raises(AuthorizationError):
            gate.check_access(session, created.id, stranger)

    def test_unknown_provider_fails_at_construction(self):
        with pytest.raises(ValueError):
            OwnershipService("oracle")

    def test_database_failure_is_internal_error(self, owner):
        broken = Mock()
        broken.exec.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

        with pytest.raises(InternalError):
            OwnershipService("aws").check_access(broken, "acct-1", owner)
        broken.rollback.assert_called_once()
