"""Payment processor webhook ingress.

Routes here use ``RawBodyRoute`` and declare no body parameter, so the bytes
reaching the signature check are exactly the bytes the sender signed.
"""

from fastapi import APIRouter, Depends
from loguru import logger

from cloudwise.api.http.deps import get_webhook_event
from cloudwise.api.http.routing import RawBodyRoute
from cloudwise.core.models import WebhookEvent

router = APIRouter(prefix="/api/payments", tags=["payments"], route_class=RawBodyRoute)


@router.post("/webhook")
async def stripe_webhook(event: WebhookEvent = Depends(get_webhook_event)) -> dict:
    logger.bind(event_id=event.id, event_type=event.type).info("Received webhook event")
    return {"received": True, "type": event.type}
