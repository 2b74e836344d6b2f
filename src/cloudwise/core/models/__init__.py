"""Per-request value models."""

from .claims import VerifiedTokenClaims
from .webhook import WebhookEnvelope, WebhookEvent, WebhookEventData

__all__ = ["VerifiedTokenClaims", "WebhookEnvelope", "WebhookEvent", "WebhookEventData"]
