"""Webhook gateway - orchestrates ingestion of relay deliveries."""

import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import structlog

from src.core.config import WebhookConfig
from src.core.exceptions import AppException, DuplicateMessage
from src.models import DeliveryResult, DeliveryStatus, InboundMessage, Resolution
from src.services.ingestion.dedup import DedupGuard
from src.services.ingestion.normalizer import is_message_event, normalize, parse_payload
from src.services.ingestion.store import MessageStore
from src.services.notifications.fanout import NotificationFanout
from src.services.routing.phone import PhoneNormalizer, get_phone_normalizer
from src.services.routing.resolver import ConversationResolver
from src.storage.base import StorageBackend

logger = structlog.get_logger()

# Schedules a coroutine function to run after the response, e.g. BackgroundTasks.add_task
FanoutScheduler = Callable[..., Any]


class IngestOutcome(str, Enum):
    STORED = "stored"
    DUPLICATE = "duplicate"


@dataclass
class IngestResult:
    outcome: IngestOutcome
    conversation_id: str | None = None

    @property
    def processed(self) -> int:
        return 1 if self.outcome == IngestOutcome.STORED else 0


class WebhookGateway:
    """Entry point for the chat relay webhook.

    Handles:
    - The subscription handshake
    - Shape detection and normalization of deliveries
    - Dedup, routing and storage of each message
    - Handing notification fanout off so the response never waits on it

    ``handle_delivery`` is the one guarded boundary: whatever goes wrong inside
    is logged and reported in the result status, never raised.
    """

    def __init__(
        self,
        config: WebhookConfig,
        storage: StorageBackend,
        fanout: NotificationFanout,
        resolver: ConversationResolver | None = None,
        phone_normalizer: PhoneNormalizer | None = None,
    ) -> None:
        self.config = config
        self.storage = storage
        self.phones = phone_normalizer or get_phone_normalizer()
        self.resolver = resolver or ConversationResolver(storage, self.phones)
        self.dedup = DedupGuard(storage)
        self.store = MessageStore(storage)
        self.fanout = fanout

    def verify_handshake(
        self,
        mode: str | None,
        verify_token: str | None,
        challenge: str | None,
    ) -> str | None:
        """Get the challenge to echo back, or None if the handshake is refused."""
        if mode != "subscribe" or not verify_token or not self.config.verify_token:
            logger.warning("Webhook verification failed", mode=mode)
            return None

        if not hmac.compare_digest(verify_token.encode(), self.config.verify_token.encode()):
            logger.warning("Webhook verification failed: token mismatch")
            return None

        logger.info("Webhook verified")
        return challenge or ""

    async def handle_delivery(
        self,
        body: Any,
        event: str | None = None,
        schedule: FanoutScheduler | None = None,
    ) -> DeliveryResult:
        """Process one POST delivery.

        Args:
            body: Decoded JSON body
            event: Event header sent by the relay, if any
            schedule: Runs fanout after the response; fanout is awaited inline when omitted

        Returns:
            DeliveryResult to send back with a 200
        """
        result = DeliveryResult()

        try:
            payload = parse_payload(body, event)
            if payload is None or not is_message_event(payload):
                logger.info("Ignoring webhook delivery", event=event)
                result.status = DeliveryStatus.IGNORED
                return result

            for message in normalize(payload):
                ingested = await self.ingest(message, schedule)
                result.processed += ingested.processed
                if ingested.conversation_id:
                    result.conversation_id = ingested.conversation_id

        except AppException as e:
            logger.error("Webhook delivery failed", code=e.code, error=e.message, details=e.details)
            result.status = DeliveryStatus.ERROR
        except Exception as e:
            logger.error("Error processing webhook delivery", error=str(e), exc_info=True)
            result.status = DeliveryStatus.ERROR

        return result

    async def ingest(
        self,
        message: InboundMessage,
        schedule: FanoutScheduler | None = None,
    ) -> IngestResult:
        """Run one canonical message through dedup, routing, storage and fanout."""
        duplicate = await self.dedup.find_duplicate(message.external_id)
        if duplicate is not None:
            return IngestResult(IngestOutcome.DUPLICATE, duplicate.conversation_id)

        sender_phone = self.phones.normalize(message.from_phone)
        resolution = await self.resolver.resolve(sender_phone, message.content)

        try:
            await self.store.store(resolution.conversation_id, message, sender_phone)
        except DuplicateMessage as e:
            # Lost the race against a concurrent redelivery
            logger.info("Duplicate delivery caught on insert", external_id=e.external_id)
            return IngestResult(
                IngestOutcome.DUPLICATE,
                e.conversation_id or resolution.conversation_id,
            )

        if resolution.agent_id is None:
            logger.info(
                "Message stored without an owner, left for manual triage",
                conversation_id=resolution.conversation_id,
            )
        elif schedule is None:
            await self.run_fanout(resolution, message, sender_phone)
        else:
            schedule(self.run_fanout, resolution, message, sender_phone)

        return IngestResult(IngestOutcome.STORED, resolution.conversation_id)

    async def run_fanout(
        self,
        resolution: Resolution,
        message: InboundMessage,
        sender_phone: str,
    ) -> None:
        try:
            await self.fanout.dispatch(resolution, message, sender_phone)
        except Exception as e:
            logger.error(
                "Notification fanout crashed",
                conversation_id=resolution.conversation_id,
                error=str(e),
                exc_info=True,
            )
