"""JWT service package."""

from .jwks import FetchRateLimiter, JWKSCache, JWKSCacheInMemory, JwksService
from .jwt_utils import extract_bearer_token, preview_jwt
from .jwt_verify import JwtVerificationService

__all__ = [
    "FetchRateLimiter",
    "JWKSCache",
    "JWKSCacheInMemory",
    "JwksService",
    "JwtVerificationService",
    "extract_bearer_token",
    "preview_jwt",
]
