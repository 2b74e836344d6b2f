import json
import time

import pytest

from cloudwise.core.errors import BadRequestError
from cloudwise.core.models import WebhookEnvelope
from cloudwise.core.services import ReplayGuard, StripeWebhookVerifier, compute_signature
from cloudwise.core.services.webhook.stripe_signature import parse_signature_header
from cloudwise.runtime.config.config_data import ConfigData, StripeConfig
from cloudwise.runtime.context import with_context
from tests.utils import WEBHOOK_SECRET, signed_webhook_headers


class SecondsClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


PAYLOAD = json.dumps(
    {
        "id": "evt_1",
        "type": "payment_intent.succeeded",
        "created": 1700000000,
        "livemode": False,
        "data": {"object": {"id": "pi_1", "amount": 2000}},
    },
    separators=(",", ":"),
).encode()


def _envelope(payload: bytes | None = PAYLOAD, timestamp: int | None = None) -> WebhookEnvelope:
    header = signed_webhook_headers(PAYLOAD, timestamp=timestamp)["stripe-signature"]
    return WebhookEnvelope(payload=payload, signature_header=header)


class TestSignatureHeader:
    def test_parses_timestamp_and_all_v1_signatures(self):
        timestamp, signatures = parse_signature_header("t=12,v1=aa,v0=zz,v1=bb")

        assert timestamp == 12
        assert signatures == ["aa", "bb"]

    @pytest.mark.parametrize("header", ["v1=aa", "t=12", "t=abc,v1=aa", "garbage"])
    def test_rejects_incomplete_headers(self, header):
        with pytest.raises(BadRequestError, match="Webhook Error"):
            parse_signature_header(header)


class TestStripeWebhookVerifier:
    """Signature verification over the captured raw bytes."""

    def test_valid_signature_yields_event(self, webhook_verifier):
        event = webhook_verifier.verify(_envelope())

        assert event.id == "evt_1"
        assert event.type == "payment_intent.succeeded"
        assert event.data.object["amount"] == 2000

    @pytest.mark.parametrize("position", [0, len(PAYLOAD) // 2, len(PAYLOAD) - 1])
    def test_single_byte_change_is_rejected(self, webhook_verifier, position):
        tampered = bytearray(PAYLOAD)
        tampered[position] ^= 0x01

        with pytest.raises(BadRequestError, match="Webhook Error"):
            webhook_verifier.verify(_envelope(payload=bytes(tampered)))

    def test_reserialized_body_is_rejected(self, webhook_verifier):
        reserialized = json.dumps(json.loads(PAYLOAD), indent=2).encode()

        with pytest.raises(BadRequestError):
            webhook_verifier.verify(_envelope(payload=reserialized))

    def test_same_delivery_is_accepted_once(self, webhook_verifier):
        envelope = _envelope()

        webhook_verifier.verify(envelope)
        with pytest.raises(BadRequestError, match="already used"):
            webhook_verifier.verify(envelope)

    def test_distinct_timestamps_are_distinct_deliveries(self, webhook_verifier):
        now = int(time.time())

        webhook_verifier.verify(_envelope(timestamp=now))
        webhook_verifier.verify(_envelope(timestamp=now - 1))

    def test_replay_protection_can_be_disabled(self):
        with with_context(ConfigData(stripe=StripeConfig(replay_protection=False))):
            verifier = StripeWebhookVerifier()
        envelope = _envelope()

        verifier.verify(envelope)
        verifier.verify(envelope)

    def test_missing_signature_header(self, webhook_verifier):
        with pytest.raises(BadRequestError) as exc_info:
            webhook_verifier.verify(WebhookEnvelope(payload=PAYLOAD, signature_header=None))

        assert exc_info.value.message == "Missing Stripe signature"

    def test_missing_raw_body(self, webhook_verifier):
        with pytest.raises(BadRequestError) as exc_info:
            webhook_verifier.verify(_envelope(payload=None))

        assert exc_info.value.message == "Missing raw body"

    def test_stale_timestamp_is_rejected(self, webhook_verifier):
        stale = int(time.time()) - 301

        with pytest.raises(BadRequestError, match="tolerance"):
            webhook_verifier.verify(_envelope(timestamp=stale))

    def test_future_timestamp_beyond_tolerance_is_rejected(self, webhook_verifier):
        future = int(time.time()) + 3600

        with pytest.raises(BadRequestError, match="tolerance"):
            webhook_verifier.verify(_envelope(timestamp=future))

    def test_replay_is_refused_while_timestamp_is_still_in_window(self):
        signed_at = 1_700_000_000
        clock = SecondsClock(signed_at - 250)
        verifier = StripeWebhookVerifier(clock=clock)
        envelope = _envelope(timestamp=signed_at)

        verifier.verify(envelope)
        # longer than the tolerance since acceptance, but the timestamp is still fresh
        clock.advance(350)

        with pytest.raises(BadRequestError, match="already used"):
            verifier.verify(envelope)

    def test_unparseable_delivery_does_not_consume_its_slot(self, webhook_verifier):
        payload = b"not json"
        header = signed_webhook_headers(payload)["stripe-signature"]
        envelope = WebhookEnvelope(payload=payload, signature_header=header)

        for _ in range(2):
            with pytest.raises(BadRequestError, match="Invalid payload"):
                webhook_verifier.verify(envelope)

    def test_tolerance_uses_injected_clock(self):
        signed_at = 1_700_000_000
        verifier = StripeWebhookVerifier(clock=lambda: signed_at + 299.0)

        assert verifier.verify(_envelope(timestamp=signed_at)).id == "evt_1"

    def test_wrong_secret_is_rejected(self):
        verifier = StripeWebhookVerifier(secret="whsec_other")

        with pytest.raises(BadRequestError, match="No signatures found"):
            verifier.verify(_envelope())

    def test_any_listed_signature_may_match(self, webhook_verifier):
        timestamp = int(time.time())
        good = compute_signature(PAYLOAD, WEBHOOK_SECRET, timestamp)
        header = f"t={timestamp},v1={'0' * 64},v1={good}"

        event = webhook_verifier.verify(WebhookEnvelope(payload=PAYLOAD, signature_header=header))

        assert event.id == "evt_1"

    def test_signed_but_unparseable_payload(self, webhook_verifier):
        payload = b"not json"
        header = signed_webhook_headers(payload)["stripe-signature"]

        with pytest.raises(BadRequestError, match="Invalid payload"):
            webhook_verifier.verify(WebhookEnvelope(payload=payload, signature_header=header))

    def test_unconfigured_secret_rejects_everything(self):
        verifier = StripeWebhookVerifier(secret="")

        with pytest.raises(BadRequestError):
            verifier.verify(_envelope())


class TestReplayGuard:
    def test_pairs_are_remembered(self):
        guard = ReplayGuard(clock=lambda: 100.0)

        assert guard.check_and_remember(1, "sig", expires_at=400.0) is True
        assert guard.check_and_remember(1, "sig", expires_at=400.0) is False
        assert guard.check_and_remember(2, "sig", expires_at=400.0) is True

    def test_pairs_are_forgotten_at_their_own_expiry(self):
        clock = SecondsClock(100.0)
        guard = ReplayGuard(clock=clock)
        guard.check_and_remember(1, "short", expires_at=150.0)
        guard.check_and_remember(2, "long", expires_at=900.0)

        clock.advance(100)

        assert guard.check_and_remember(1, "short", expires_at=450.0) is True
        assert guard.check_and_remember(2, "long", expires_at=900.0) is False
