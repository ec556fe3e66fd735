"""Webhook endpoints for the chat relay."""

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Header, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from src.api.dependencies import GatewayDep

logger = structlog.get_logger()

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.get("/whatsapp")
async def verify_whatsapp_webhook(
    gateway: GatewayDep,
    mode: Annotated[str | None, Query(alias="hub.mode")] = None,
    verify_token: Annotated[str | None, Query(alias="hub.verify_token")] = None,
    challenge: Annotated[str | None, Query(alias="hub.challenge")] = None,
) -> Response:
    """Answer the subscription handshake.

    Echoes the challenge on success; this is the only webhook path that
    answers with a non-200 status.
    """
    accepted = gateway.verify_handshake(mode, verify_token, challenge)
    if accepted is None:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"error": "Verification failed"},
        )
    return PlainTextResponse(accepted, status_code=status.HTTP_200_OK)


@router.post("/whatsapp")
async def whatsapp_webhook(
    request: Request,
    gateway: GatewayDep,
    background_tasks: BackgroundTasks,
    x_msghub_event: Annotated[str | None, Header()] = None,
) -> dict[str, Any]:
    """Receive a relay delivery, in either the canonical or the legacy shape.

    Always answers 200. Failures are reported in ``status`` so the relay
    doesn't retry against a store that is already failing; legitimate
    redeliveries are absorbed by dedup.
    """
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        body = None

    result = await gateway.handle_delivery(
        body,
        event=x_msghub_event,
        schedule=background_tasks.add_task,
    )

    logger.info(
        "Processed webhook delivery",
        status=result.status.value,
        processed=result.processed,
        conversation_id=result.conversation_id,
    )

    return result.to_response()
