"""JWT verification service."""

from authlib.jose import JoseError, JsonWebKey, JsonWebToken
from loguru import logger

from cloudwise.core.errors import AuthenticationError
from cloudwise.core.models.claims import VerifiedTokenClaims
from cloudwise.core.services.jwt.jwks import JwksService
from cloudwise.core.services.jwt.jwt_utils import (
    JwtPreview,
    create_verified_claims,
    preview_jwt,
)
from cloudwise.runtime.context import get_config


class JwtVerificationService:
    def __init__(self, jwks_service: JwksService):
        self._jwks_service = jwks_service

    async def verify_jwt(
        self, token: str, *, preview: JwtPreview | None = None
    ) -> VerifiedTokenClaims:
        """Verify a bearer token issued by the configured identity provider.

        Checks the signature against the remote key set, the issuer
        (``https://{domain}/``), the audience, expiry and the algorithm
        allow-list, which only ever holds asymmetric schemes.

        Raises:
            AuthenticationError: on any signature, expiry, issuer, audience or
                algorithm mismatch, and when the key set cannot be fetched.
        """
        cfg = get_config().auth0
        if not cfg.audience:
            # authlib skips the aud check for an empty expected value
            raise AuthenticationError("Token audience is not configured")
        pv = preview or preview_jwt(token)

        # alg allowlist
        if pv.alg not in cfg.algorithms:
            raise AuthenticationError("Disallowed JWT algorithm")
        if not pv.kid:
            raise AuthenticationError("JWT header missing key id")

        jwk = await self._jwks_service.get_signing_key(pv.kid)
        try:
            verification_key = JsonWebKey.import_key(jwk)
        except (JoseError, ValueError) as exc:
            logger.bind(kid=pv.kid).warning("Unusable signing key in key set")
            raise AuthenticationError("Unable to verify token") from exc

        claims_options = {
            "iss": {"essential": True, "value": cfg.issuer},
            "aud": {"essential": True, "value": cfg.audience},
            "sub": {"essential": True},
            "exp": {"essential": True},
        }

        # verify signature + registered claims
        try:
            claims = JsonWebToken(cfg.algorithms).decode(
                token, verification_key, claims_options=claims_options
            )
            claims.validate(leeway=cfg.clock_skew)
        except (JoseError, ValueError) as exc:
            logger.debug("JWT rejected: {}", exc)
            raise AuthenticationError("Invalid or expired token") from exc

        if not isinstance(claims.get("sub"), str) or not claims["sub"]:
            raise AuthenticationError("Missing sub claim")

        return create_verified_claims(token=token, claims=dict(claims))
