from dataclasses import dataclass

from cloudwise.core.services import (
    DbSessionService,
    JWKSCacheInMemory,
    JwksService,
    JwtVerificationService,
    StripeWebhookVerifier,
)


@dataclass
class ApplicationDependencies:
    jwks_cache: JWKSCacheInMemory
    jwks_service: JwksService
    jwt_verify_service: JwtVerificationService
    database_service: DbSessionService
    webhook_verifier: StripeWebhookVerifier
