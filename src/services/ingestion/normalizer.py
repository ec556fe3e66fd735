"""Payload normalizer - turns either webhook shape into canonical inbound messages."""

from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import ValidationError

from src.core.exceptions import PayloadError
from src.models import ChannelType, InboundMessage, MessageType
from src.models.webhook import CanonicalPayload, LegacyMessage, LegacyPayload, WebhookPayload

logger = structlog.get_logger()

EVENT_HEADER = "X-MsgHub-Event"
MESSAGE_RECEIVED = "message.received"
LEGACY_OBJECT = "whatsapp_business_account"


def parse_payload(body: Any, event: str | None = None) -> WebhookPayload | None:
    """Decide which wire shape a delivery is, once, at the boundary.

    The relay marks its deliveries with the event header; without it the
    body's shape decides.

    Args:
        body: Decoded JSON body
        event: Value of the event header, if sent

    Returns:
        CanonicalPayload, LegacyPayload, or None for an unrecognised body

    Raises:
        PayloadError: body is not a JSON object or doesn't fit its shape
    """
    if not isinstance(body, dict):
        raise PayloadError("Webhook body must be a JSON object", {"type": type(body).__name__})

    try:
        if event:
            return CanonicalPayload.model_validate({**body, "event": body.get("event") or event})
        if body.get("object") == LEGACY_OBJECT or "entry" in body:
            return LegacyPayload.model_validate(body)
        if "data" in body:
            return CanonicalPayload.model_validate(body)
    except ValidationError as e:
        raise PayloadError("Webhook body does not match its shape", {"error_count": e.error_count()}) from e

    return None


def is_message_event(payload: WebhookPayload) -> bool:
    if isinstance(payload, CanonicalPayload):
        return payload.event in (None, MESSAGE_RECEIVED)
    return True


def normalize(payload: WebhookPayload) -> list[InboundMessage]:
    """Convert a parsed payload into canonical messages.

    Deliveries without a sender or content are skipped, not rejected.
    """
    if isinstance(payload, CanonicalPayload):
        message = _from_canonical(payload)
        return [message] if message else []
    return [m for m in (_from_legacy(raw) for raw in _legacy_text_messages(payload)) if m]


def _from_canonical(payload: CanonicalPayload) -> InboundMessage | None:
    data = payload.data
    if data is None or not data.from_ or not data.content:
        logger.info("Skipping delivery without sender or content")
        return None

    return InboundMessage(
        external_id=data.external_id or data.id,
        channel=ChannelType.WHATSAPP,
        from_phone=data.from_,
        content=data.content,
        type=data.type or MessageType.TEXT.value,
        received_at=_parse_iso(payload.timestamp),
    )


def _legacy_text_messages(payload: LegacyPayload) -> list[LegacyMessage]:
    messages = []
    for entry in payload.entry:
        for change in entry.changes:
            if change.value is None:
                continue
            for msg in change.value.messages:
                if msg.type == MessageType.TEXT.value and msg.text and msg.text.body:
                    messages.append(msg)
    return messages


def _from_legacy(msg: LegacyMessage) -> InboundMessage | None:
    if not msg.from_:
        logger.info("Skipping legacy message without sender", external_id=msg.id)
        return None

    return InboundMessage(
        external_id=msg.id,
        channel=ChannelType.WHATSAPP,
        from_phone=msg.from_,
        content=msg.text.body,
        type=MessageType.TEXT.value,
        received_at=_parse_unix(msg.timestamp),
    )


def _parse_iso(value: str | int | None) -> datetime:
    if isinstance(value, int):
        return _parse_unix(value)
    if value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparseable delivery timestamp", timestamp=value)
    return datetime.now(timezone.utc)


def _parse_unix(value: str | int | None) -> datetime:
    if value:
        try:
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            logger.debug("Unparseable legacy timestamp", timestamp=value)
    return datetime.now(timezone.utc)
