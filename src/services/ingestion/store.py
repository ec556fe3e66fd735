"""Message store - persists inbound messages against their conversation."""

from uuid import uuid4

import structlog

from src.core.exceptions import AppException, PersistenceError
from src.models import InboundMessage, Message, MessageDirection, MessageStatus
from src.storage.base import StorageBackend

logger = structlog.get_logger()


class MessageStore:
    """Inserts the message, then bumps the conversation's recency.

    Only the insert decides the outcome. A failed recency bump leaves the
    conversation sorted a little stale and is logged.
    """

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    async def store(
        self,
        conversation_id: str,
        message: InboundMessage,
        sender_phone: str,
    ) -> Message:
        """Persist an inbound message.

        Args:
            conversation_id: Resolved conversation
            message: Canonical inbound message
            sender_phone: Sender's normalized phone

        Returns:
            The stored message

        Raises:
            DuplicateMessage: external_id was stored concurrently
            PersistenceError: the insert failed
        """
        stored = Message(
            id=str(uuid4()),
            conversation_id=conversation_id,
            sender_phone=sender_phone,
            content=message.content,
            direction=MessageDirection.INBOUND,
            external_id=message.external_id,
            received_at=message.received_at,
            status=MessageStatus.RECEIVED,
        )

        try:
            await self.storage.save_message(stored)
        except AppException:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to store message: {e}", operation="save_message") from e

        try:
            await self.storage.touch_conversation(conversation_id)
        except Exception as e:
            logger.warning(
                "Failed to bump conversation recency",
                conversation_id=conversation_id,
                error=str(e),
            )

        logger.info(
            "Stored inbound message",
            message_id=stored.id,
            conversation_id=conversation_id,
            external_id=stored.external_id,
        )
        return stored
