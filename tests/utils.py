import asyncio
import time
from collections.abc import Callable
from typing import Any

import httpx
from authlib.jose import JsonWebKey, jwt

from cloudwise.core.services import build_signature_header

AUTH0_DOMAIN = "cloudwise-test.auth0.test"
ISSUER = f"https://{AUTH0_DOMAIN}/"
AUDIENCE = "https://api.cloudwise.test"
KID = "test-signing-key"
WEBHOOK_SECRET = "whsec_test_secret"


def generate_rsa_key():
    return JsonWebKey.generate_key("RSA", 2048, is_private=True)


def public_jwk(key, kid: str = KID) -> dict[str, Any]:
    jwk = dict(key.as_dict(is_private=False))
    jwk.update({"kid": kid, "alg": "RS256", "use": "sig"})
    return jwk


def issue_token(
    key,
    *,
    kid: str | None = KID,
    alg: str = "RS256",
    subject: str = "auth0|user-1",
    issuer: str = ISSUER,
    audience: str | list[str] = AUDIENCE,
    expires_in: int = 3600,
    **claims: Any,
) -> str:
    now = int(time.time())
    header: dict[str, Any] = {"alg": alg, "typ": "JWT"}
    if kid is not None:
        header["kid"] = kid
    payload = {
        "iss": issuer,
        "sub": subject,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **claims,
    }
    return jwt.encode(header, payload, key).decode("ascii")


def signed_webhook_headers(
    payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None
) -> dict[str, str]:
    return {
        "stripe-signature": build_signature_header(payload, secret, timestamp),
        "content-type": "application/json",
    }


class JwksEndpoint:
    """Callable for ``httpx.MockTransport`` that serves a key-set document.

    ``responses`` is consumed one per request; once exhausted the last entry
    keeps being served. Entries are a JSON document, a status code, or an
    exception to raise.
    """

    def __init__(self, *responses: Any, delay: float = 0.0) -> None:
        self.responses = list(responses)
        self.delay = delay
        self.calls = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        index = min(self.calls, len(self.responses) - 1)
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)

        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, int):
            return httpx.Response(response, json={"error": "unavailable"})
        return httpx.Response(200, json=response)


def mock_transport(endpoint: Callable) -> httpx.MockTransport:
    return httpx.MockTransport(endpoint)
