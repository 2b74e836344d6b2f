"""Core services for the request trust boundary."""

from .access.ownership import OwnershipService, check_role
from .database.db_session import DbSessionService
from .jwt.jwks import FetchRateLimiter, JWKSCache, JWKSCacheInMemory, JwksService
from .jwt.jwt_utils import extract_bearer_token, preview_jwt
from .jwt.jwt_verify import JwtVerificationService
from .upload.validation import ValidatedUpload, validate_upload
from .user.identity_resolver import IdentityResolverService
from .webhook.stripe_signature import (
    ReplayGuard,
    StripeWebhookVerifier,
    build_signature_header,
    compute_signature,
)

__all__ = [
    "DbSessionService",
    "FetchRateLimiter",
    "IdentityResolverService",
    "JWKSCache",
    "JWKSCacheInMemory",
    "JwksService",
    "JwtVerificationService",
    "OwnershipService",
    "ReplayGuard",
    "StripeWebhookVerifier",
    "ValidatedUpload",
    "build_signature_header",
    "check_role",
    "compute_signature",
    "extract_bearer_token",
    "preview_jwt",
    "validate_upload",
]
