"""Dedup guard - drops relay redeliveries by provider message id."""

import structlog

from src.models import Message
from src.storage.base import StorageBackend

logger = structlog.get_logger()


class DedupGuard:
    """Fast-path redelivery check.

    The storage backend's uniqueness constraint on ``external_id`` remains the
    backstop for concurrent redeliveries that both pass this check.
    """

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    async def find_duplicate(self, external_id: str | None) -> Message | None:
        """Get the already-stored message with this id, on any conversation."""
        if not external_id:
            return None

        existing = await self.storage.get_message_by_external_id(external_id)
        if existing is not None:
            logger.info(
                "Duplicate delivery, skipping",
                external_id=external_id,
                conversation_id=existing.conversation_id,
            )
        return existing
