"""Conversation resolver - finds the conversation and responsible agent for a sender."""

import re
from uuid import uuid4

import structlog

from src.models import Conversation, ConversationStatus, Property, Resolution
from src.services.routing.phone import PhoneNormalizer, get_phone_normalizer
from src.storage.base import StorageBackend

logger = structlog.get_logger()

PROPERTY_REFERENCE = re.compile(r"/properties/(\d+)", re.IGNORECASE)


def extract_property_id(content: str | None) -> int | None:
    """Pull a listing id out of a shared link such as ``https://x/properties/456``."""
    if not content:
        return None
    match = PROPERTY_REFERENCE.search(content)
    if match:
        return int(match.group(1))
    return None


class ConversationResolver:
    """Resolves a normalized sender phone to a conversation and its owner.

    Agent ownership is resolved through a fallback chain:
    - property reference in the message (agent profile, then direct owner)
    - most recent lead on the sender's phone
    - unassigned, left for manual triage

    Assignment is one-way. Once a conversation has an agent it is returned
    unchanged, and backfills never overwrite a field that is already set.
    """

    def __init__(
        self,
        storage: StorageBackend,
        phone_normalizer: PhoneNormalizer | None = None,
    ) -> None:
        self.storage = storage
        self.phones = phone_normalizer or get_phone_normalizer()

    async def resolve(self, phone: str, content: str | None = None) -> Resolution:
        """Find or create the conversation for a sender.

        Args:
            phone: Sender phone (normalized again here, which is a no-op for keys)
            content: Message text, scanned for a property reference

        Returns:
            Resolution with the conversation id and current ownership
        """
        directory_key = self.phones.normalize(phone)

        conversation = await self.storage.find_active_conversation(directory_key)
        if conversation is not None:
            return await self._resolve_existing(conversation, content)

        return await self._create(directory_key, content)

    async def _agent_for(self, prop: Property) -> str | None:
        if prop.agent_profile_id:
            profile = await self.storage.get_agent_profile(prop.agent_profile_id)
            if profile is not None:
                return profile.user_id
        # Listed privately
        return prop.owner_user_id

    async def _agent_from_reference(self, content: str | None) -> tuple[str | None, int | None]:
        """Returns (agent_id, property_id); property_id is None for unknown listings."""
        property_id = extract_property_id(content)
        if property_id is None:
            return None, None

        prop = await self.storage.get_property(property_id)
        if prop is None:
            logger.info("Referenced property not found", property_id=property_id)
            return None, None

        return await self._agent_for(prop), prop.id

    async def _agent_from_lead(self, directory_key: str) -> str | None:
        # Dual-form match, see PhoneNormalizer.lookup_forms
        lead = await self.storage.find_latest_lead_by_phone(self.phones.lookup_forms(directory_key))
        if lead is None:
            return None
        return lead.agent_id

    async def _resolve_existing(self, conversation: Conversation, content: str | None) -> Resolution:
        if conversation.is_assigned:
            return Resolution(
                conversation_id=conversation.id,
                agent_id=conversation.agent_id,
                property_id=conversation.property_id,
            )

        agent_id, property_id = await self._agent_from_reference(content)
        if agent_id is None:
            property_id = None
            agent_id = await self._agent_from_lead(conversation.phone_number)

        if agent_id is None:
            logger.debug("Conversation remains unassigned", conversation_id=conversation.id)
            return Resolution(
                conversation_id=conversation.id,
                property_id=conversation.property_id,
            )

        updated = await self.storage.backfill_assignment(conversation.id, agent_id, property_id)
        if updated is None:
            updated = conversation

        logger.info(
            "Backfilled conversation owner",
            conversation_id=updated.id,
            agent_id=updated.agent_id,
            property_id=updated.property_id,
        )

        return Resolution(
            conversation_id=updated.id,
            agent_id=updated.agent_id,
            property_id=updated.property_id,
        )

    async def _create(self, directory_key: str, content: str | None) -> Resolution:
        agent_id, property_id = await self._agent_from_reference(content)
        if agent_id is None:
            agent_id = await self._agent_from_lead(directory_key)

        # Attribution only, independent of ownership
        user = await self.storage.find_user_by_phone(self.phones.lookup_forms(directory_key))

        conversation = Conversation(
            id=str(uuid4()),
            phone_number=directory_key,
            user_id=user.id if user else None,
            agent_id=agent_id,
            property_id=property_id,
            status=ConversationStatus.ACTIVE,
        )
        stored, created = await self.storage.find_or_create_active_conversation(conversation)
        if not created:
            # A concurrent message from the same sender created it first
            logger.info(
                "Joined conversation created concurrently",
                conversation_id=stored.id,
            )
            return await self._resolve_existing(stored, content)

        logger.info(
            "Created new conversation",
            conversation_id=conversation.id,
            agent_id=agent_id,
            property_id=property_id,
            user_id=conversation.user_id,
        )

        return Resolution(
            conversation_id=conversation.id,
            agent_id=agent_id,
            property_id=property_id,
            created=True,
        )
