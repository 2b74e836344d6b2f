"""Webhook envelope and event models."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class WebhookEnvelope:
    """Exact request bytes plus the sender-supplied signature header.

    ``payload`` must be byte-identical to what the sender signed; it is never
    decoded and re-encoded before verification.
    """

    payload: bytes | None
    signature_header: str | None


class WebhookEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    object: dict[str, Any] = Field(default_factory=dict)
    previous_attributes: dict[str, Any] | None = None


class WebhookEvent(BaseModel):
    """Payment processor event produced by a verified webhook."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(description="Event identifier")
    type: str = Field(description="Event type, e.g. payment_intent.succeeded")
    created: int = Field(description="Creation time as a Unix timestamp")
    livemode: bool = Field(default=False)
    api_version: str | None = None
    data: WebhookEventData = Field(default_factory=WebhookEventData)
