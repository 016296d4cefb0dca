"""
api/webhook.py

The fulfillment endpoint called by the intent-detection service on every turn.

Endpoints:
  - POST /webhook: Validates the fulfillment request, runs one turn through the
                   orchestrator and returns the rendered fulfillment response.

The orchestrator contains every error raised while handling a turn, so this
endpoint answers 200 with whatever response was produced; only malformed
requests are rejected (422, by FastAPI's request validation).
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from core.orchestrator import Orchestrator
from shared.models import WebhookRequest
from .dialogflow_es import DialogflowEsTransport

# Get a logger instance for this module
logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator(request: Request) -> Orchestrator:
    """The orchestrator built at startup and stored on the application state."""
    return request.app.state.orchestrator


@router.post("/webhook")
async def handle_webhook(
    webhook_request: WebhookRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """
    Run one conversation turn.

    Args:
        webhook_request (WebhookRequest): The Dialogflow ES fulfillment request.
        orchestrator (Orchestrator): Injected from `app.state`.

    Returns:
        JSONResponse: The WebhookResponse with the response text, written
            contexts and the follow-up event, if any.
    """
    transport = DialogflowEsTransport(webhook_request)
    logger.info(
        "[handle_webhook] session=%s action=%s",
        transport.session_id,
        transport.get_detected_action(),
    )

    await orchestrator.handle_turn(transport)

    response = transport.build_response()
    logger.debug(
        "[handle_webhook] session=%s event=%s contexts=%d",
        transport.session_id,
        transport.followup_event,
        len(response.outputContexts),
    )
    return JSONResponse(response.model_dump(exclude_none=True))
