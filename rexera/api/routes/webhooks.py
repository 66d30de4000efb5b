"""
Routes /api/webhooks (callbacks n8n)
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ...clients.n8n import N8nClient
from ...models.webhooks import N8nWebhookEvent
from ...services.webhook_processor import WebhookProcessingError, WebhookProcessor
from ..auth import verify_webhook_secret
from ..dependencies import get_n8n_client, get_webhook_processor
from ..errors import bad_request

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/n8n", dependencies=[Depends(verify_webhook_secret)])
async def n8n_webhook(
    request: Request,
    processor: WebhookProcessor = Depends(get_webhook_processor),
) -> JSONResponse:
    """
    Reçoit un événement n8n et l'applique.

    Payload invalide ou type inconnu: 400. Evénement strict inapplicable: 400.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise bad_request("Invalid webhook payload", [{"field": "body", "message": "Invalid JSON"}])

    try:
        event = N8nWebhookEvent.model_validate(payload)
    except ValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        logger.warning("n8n_webhook_invalid_payload", errors=details)
        raise bad_request("Invalid webhook payload", details)

    try:
        result = await processor.process(event)
    except WebhookProcessingError as e:
        raise bad_request(str(e))

    body = {
        "success": True,
        "message": "Webhook processed successfully",
        "eventType": event.event_type.value,
        "executionId": event.execution_id,
    }
    if not result["applied"]:
        body["warning"] = result["error"]
    return JSONResponse(content=body)


@router.get("/n8n/health")
async def n8n_webhook_health(
    n8n: N8nClient = Depends(get_n8n_client),
    processor: WebhookProcessor = Depends(get_webhook_processor),
) -> JSONResponse:
    return JSONResponse(
        content={
            "success": True,
            "message": "n8n webhook endpoint is healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "n8n": n8n.config_status(),
            "supportedEvents": processor.event_types,
        }
    )
