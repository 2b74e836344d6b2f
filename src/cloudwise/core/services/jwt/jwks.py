import asyncio
import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Any

import httpx
from cachetools import TTLCache
from loguru import logger

from cloudwise.core.errors import AuthenticationError
from cloudwise.runtime.context import get_config

_KEY_UNAVAILABLE = "Unable to verify token"


class JWKSCache(ABC):
    @abstractmethod
    def get_jwk(self, kid: str) -> dict[str, Any] | None:
        """
        Get a cached signing key by key id.

        Args:
            kid: The ``kid`` header of the token being verified

        Returns:
            The JWK dictionary, or None when it is not cached
        """
        raise NotImplementedError

    @abstractmethod
    def set_jwks(self, jwks: dict[str, Any]) -> None:
        """
        Cache every signing key of a fetched key set.

        Args:
            jwks: The JWKS document (``{"keys": [...]}``)
        """
        raise NotImplementedError

    @abstractmethod
    def clear_jwks_cache(self) -> None:
        """Clear the JWKS cache."""
        raise NotImplementedError


class JWKSCacheInMemory(JWKSCache):
    """Process-wide key cache with time-bounded invalidation."""

    def __init__(self, maxsize: int | None = None, ttl: int | None = None) -> None:
        cfg = get_config().jwks
        self._keys: TTLCache[str, dict[str, Any]] = TTLCache(
            maxsize=maxsize or cfg.cache_max_keys, ttl=ttl or cfg.cache_ttl
        )

    def get_jwk(self, kid: str) -> dict[str, Any] | None:
        return self._keys.get(kid)

    def set_jwks(self, jwks: dict[str, Any]) -> None:
        for jwk in jwks.get("keys", []):
            kid = jwk.get("kid")
            if isinstance(kid, str) and kid:
                self._keys[kid] = jwk

    def clear_jwks_cache(self) -> None:
        self._keys.clear()


class FetchRateLimiter:
    """Caps key-set fetches to ``limit`` per rolling ``window`` seconds.

    Only touched from the event loop thread, never across an await.
    """

    def __init__(self, limit: int, window: float = 60.0, clock=time.monotonic) -> None:
        self._limit = limit
        self._window = window
        self._clock = clock
        self._hits: deque[float] = deque()

    def try_acquire(self) -> bool:
        now = self._clock()
        while self._hits and now - self._hits[0] >= self._window:
            self._hits.popleft()
        if len(self._hits) >= self._limit:
            return False
        self._hits.append(now)
        return True


class JwksService:
    """Resolves token signing keys from the identity provider's key set.

    Cache misses trigger a refetch; concurrent misses share one in-flight
    fetch, and refetches are capped per minute so forged ``kid`` values cannot
    force a fetch storm.
    """

    def __init__(
        self,
        cache: JWKSCache,
        *,
        limiter: FetchRateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cache = cache
        self._limiter = limiter or FetchRateLimiter(get_config().jwks.requests_per_minute)
        self._transport = transport
        self._inflight: asyncio.Future[dict[str, Any]] | None = None

    async def get_signing_key(self, kid: str) -> dict[str, Any]:
        """Return the JWK for ``kid``, refetching the key set on a miss.

        Raises:
            AuthenticationError: unknown kid, refetch cap reached or the
                provider is unreachable. The three are indistinguishable to
                the caller.
        """
        jwk = self._cache.get_jwk(kid)
        if jwk is not None:
            return jwk

        await self.refresh()

        jwk = self._cache.get_jwk(kid)
        if jwk is None:
            logger.bind(kid=kid).warning("jwks.unknown_kid")
            raise AuthenticationError(_KEY_UNAVAILABLE)
        return jwk

    async def refresh(self) -> dict[str, Any]:
        """Fetch the key set, joining an in-flight fetch when there is one."""
        inflight = self._inflight
        if inflight is None or inflight.done():
            if not self._limiter.try_acquire():
                logger.warning("jwks.refetch_capped")
                raise AuthenticationError(_KEY_UNAVAILABLE)
            inflight = asyncio.ensure_future(self._fetch_with_retry())
            self._inflight = inflight
            inflight.add_done_callback(self._clear_inflight)

        # shield: a cancelled waiter must not cancel the fetch other callers await
        return await asyncio.shield(inflight)

    def _clear_inflight(self, fut: asyncio.Future) -> None:
        if self._inflight is fut:
            self._inflight = None
        if not fut.cancelled():
            # mark retrieved so an unawaited failure is not reported as lost
            fut.exception()

    async def _fetch_with_retry(self) -> dict[str, Any]:
        cfg = get_config().jwks
        attempts = max(1, cfg.fetch_attempts)

        for attempt in range(1, attempts + 1):
            try:
                jwks = await self._fetch()
                self._cache.set_jwks(jwks)
                if attempt > 1:
                    logger.info("jwks.fetch_recovered", attempt=attempt)
                return jwks
            except httpx.HTTPStatusError as exc:
                retryable = exc.response.status_code >= 500
                last_error: Exception = exc
            except (httpx.TransportError, ValueError) as exc:
                retryable = True
                last_error = exc

            logger.bind(attempt=attempt, error=str(last_error)).warning("jwks.fetch_failed")
            if not retryable or attempt == attempts:
                raise AuthenticationError(_KEY_UNAVAILABLE) from last_error
            await asyncio.sleep(cfg.backoff_base * (2 ** (attempt - 1)))

        raise AuthenticationError(_KEY_UNAVAILABLE)  # pragma: no cover

    async def _fetch(self) -> dict[str, Any]:
        cfg = get_config()
        jwks_url = cfg.auth0.jwks_uri

        async with httpx.AsyncClient(
            timeout=cfg.jwks.timeout, transport=self._transport
        ) as client:
            resp = await client.get(jwks_url)
            resp.raise_for_status()
            jwks = resp.json()

        if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
            raise ValueError("Key set document has no 'keys' list")
        logger.debug("Fetched {} signing keys from {}", len(jwks["keys"]), jwks_url)
        return jwks

    async def warmup(self) -> bool:
        """Populate the cache ahead of the first request."""
        try:
            await self.refresh()
            return True
        except AuthenticationError:
            logger.exception("JWKS warmup failed")
            return False
