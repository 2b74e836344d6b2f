"""FastAPI dependency implementations.

Protected routes chain ``get_current_user`` (token verification and identity
resolution), then optionally ``require_role`` and ``require_account_access``.
Each gate raises and never recovers; the error translator renders the
rejection.
"""

from collections.abc import Iterator

from fastapi import Depends, Request
from sqlmodel import Session

from cloudwise.api.http.app_data import ApplicationDependencies
from cloudwise.core.errors import AuthenticationError
from cloudwise.core.models import WebhookEnvelope, WebhookEvent
from cloudwise.core.services import (
    IdentityResolverService,
    JwtVerificationService,
    OwnershipService,
    StripeWebhookVerifier,
    check_role,
    extract_bearer_token,
)
from cloudwise.entities.core.user import User, UserRole
from cloudwise.entities.service.account import CloudProvider, OwnedAccount
from cloudwise.runtime.context import get_config


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_db_session(request: Request) -> Iterator[Session]:
    """Yield a database session scoped to the request."""
    session = get_app_dependencies(request).database_service.get_session()
    try:
        yield session
    finally:
        session.close()


def get_jwt_verify_service(request: Request) -> JwtVerificationService:
    """Get the JWT verification service instance."""
    return get_app_dependencies(request).jwt_verify_service


def get_webhook_verifier(request: Request) -> StripeWebhookVerifier:
    """Get the webhook signature verifier instance."""
    return get_app_dependencies(request).webhook_verifier


async def _authenticate(
    request: Request,
    token: str,
    db: Session,
    jwt_verify: JwtVerificationService,
) -> User:
    claims = await jwt_verify.verify_jwt(token)
    user = await IdentityResolverService(db).resolve_async(claims)
    request.state.user = user
    return user


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db_session),
    jwt_verify: JwtVerificationService = Depends(get_jwt_verify_service),
) -> User:
    """Authenticate the request with its Bearer token, provisioning on first sight."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise AuthenticationError("No authorization token was found")
    return await _authenticate(request, token, db, jwt_verify)


async def get_optional_user(
    request: Request,
    db: Session = Depends(get_db_session),
    jwt_verify: JwtVerificationService = Depends(get_jwt_verify_service),
) -> User | None:
    """Like :func:`get_current_user`, but a request without credentials passes as None.

    A credential that is present but malformed or invalid is still rejected.
    """
    header = request.headers.get("Authorization")
    if header is None:
        return None
    token = extract_bearer_token(header)
    if token is None:
        raise AuthenticationError("Malformed authorization header")
    return await _authenticate(request, token, db, jwt_verify)


def require_role(role: UserRole = UserRole.ADMIN):
    """Dependency factory: the authenticated user must carry ``role``."""

    async def role_gate(user: User = Depends(get_current_user)) -> User:
        check_role(user, role)
        return user

    return role_gate


def require_account_access(provider: CloudProvider | str):
    """Dependency factory: the ``account_id`` path parameter must be owned by the caller.

    The provider tag is resolved here, so a bad tag fails when routes are
    declared rather than on the first request.
    """
    ownership = OwnershipService(provider)

    def ownership_gate(
        request: Request,
        account_id: str,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db_session),
    ) -> OwnedAccount:
        account = ownership.check_access(db, account_id, user)
        request.state.account = account
        return account

    return ownership_gate


async def get_webhook_event(
    request: Request,
    verifier: StripeWebhookVerifier = Depends(get_webhook_verifier),
) -> WebhookEvent:
    """Verify the captured webhook bytes and attach the parsed event."""
    envelope = WebhookEnvelope(
        payload=getattr(request.state, "raw_body", None),
        signature_header=request.headers.get(get_config().stripe.signature_header),
    )
    event = verifier.verify(envelope)
    request.state.webhook_event = event
    return event
