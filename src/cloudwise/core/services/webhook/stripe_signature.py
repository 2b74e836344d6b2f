"""Stripe webhook signature verification.

Stripe signs ``"{timestamp}." + raw_body`` with HMAC-SHA256 using the
endpoint secret and sends ``t=<timestamp>,v1=<hex>[,v1=<hex>...]`` in the
``Stripe-Signature`` header. Verification is pure computation over the
captured bytes.
"""

import hashlib
import hmac
import json
import math
import threading
import time
from collections.abc import Callable

from cachetools import TLRUCache
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from cloudwise.core.errors import BadRequestError
from cloudwise.core.models.webhook import WebhookEnvelope, WebhookEvent
from cloudwise.runtime.context import get_config

SIGNATURE_SCHEME = "v1"


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    """HMAC-SHA256 hex digest over ``"{timestamp}." + payload``."""
    signed_payload = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def build_signature_header(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Header value a sender would attach for ``payload``."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    return f"t={timestamp},{SIGNATURE_SCHEME}={compute_signature(payload, secret, timestamp)}"


def parse_signature_header(header: str) -> tuple[int, list[str]]:
    """Split a signature header into its timestamp and ``v1`` signatures."""
    timestamp: int | None = None
    signatures: list[str] = []

    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise BadRequestError("Webhook Error: Unable to extract timestamp and signatures from header") from None
        elif key == SIGNATURE_SCHEME:
            signatures.append(value)

    if timestamp is None or not signatures:
        raise BadRequestError(
            "Webhook Error: Unable to extract timestamp and signatures from header"
        )
    return timestamp, signatures


class ReplayGuard:
    """Remembers accepted (timestamp, signature) pairs until they fall out of the tolerance window."""

    def __init__(self, clock: Callable[[], float] = time.time, maxsize: int = 10_000) -> None:
        # value is the expiry instant of each pair
        self._seen: TLRUCache[tuple[int, str], float] = TLRUCache(
            maxsize=maxsize, ttu=lambda _key, expires_at, _now: expires_at, timer=clock
        )
        self._lock = threading.Lock()

    def check_and_remember(self, timestamp: int, signature: str, expires_at: float) -> bool:
        """Return False when the pair was already accepted."""
        key = (timestamp, signature)
        with self._lock:
            if key in self._seen:
                return False
            self._seen[key] = expires_at
            return True


class StripeWebhookVerifier:
    def __init__(
        self,
        secret: str | None = None,
        *,
        tolerance: int | None = None,
        replay_guard: ReplayGuard | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        cfg = get_config().stripe
        self._secret = secret if secret is not None else cfg.webhook_secret
        self._tolerance = cfg.tolerance if tolerance is None else tolerance
        self._clock = clock
        if replay_guard is None and cfg.replay_protection:
            replay_guard = ReplayGuard(clock=clock)
        self._replay_guard = replay_guard

    def verify(self, envelope: WebhookEnvelope) -> WebhookEvent:
        """Verify the envelope and parse its event.

        Raises:
            BadRequestError: missing header, missing raw body, no matching
                signature, timestamp outside the window, replay, or an
                unparseable event.
        """
        if not envelope.signature_header:
            raise BadRequestError("Missing Stripe signature")
        if envelope.payload is None:
            raise BadRequestError("Missing raw body")
        if not self._secret:
            raise BadRequestError("Webhook Error: Webhook secret is not configured")

        timestamp, signatures = parse_signature_header(envelope.signature_header)
        expected = compute_signature(envelope.payload, self._secret, timestamp)

        matched = next(
            (sig for sig in signatures if hmac.compare_digest(expected, sig)), None
        )
        if matched is None:
            raise BadRequestError(
                "Webhook Error: No signatures found matching the expected signature for payload"
            )

        if self._tolerance and abs(self._clock() - timestamp) > self._tolerance:
            raise BadRequestError("Webhook Error: Timestamp outside the tolerance zone")

        event = self._parse_event(envelope.payload)

        # kept while the signed timestamp can still pass the window check
        expires_at = timestamp + self._tolerance + 1 if self._tolerance else math.inf
        if self._replay_guard is not None and not self._replay_guard.check_and_remember(
            timestamp, matched, expires_at
        ):
            raise BadRequestError("Webhook Error: Signature already used")

        logger.bind(event_id=event.id, event_type=event.type).info("webhook.verified")
        return event

    @staticmethod
    def _parse_event(payload: bytes) -> WebhookEvent:
        try:
            return WebhookEvent.model_validate(json.loads(payload))
        except (UnicodeDecodeError, json.JSONDecodeError, PydanticValidationError) as exc:
            raise BadRequestError("Webhook Error: Invalid payload") from exc
