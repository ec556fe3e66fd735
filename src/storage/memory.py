"""In-memory storage backend for development and testing."""

import asyncio
from datetime import datetime

from src.core.exceptions import DuplicateMessage
from src.models import (
    AgentProfile,
    Conversation,
    ConversationStatus,
    Lead,
    Message,
    Notification,
    Property,
    User,
)
from src.storage.base import StorageBackend


class InMemoryStorage(StorageBackend):
    """In-memory storage implementation for development."""

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, Message] = {}
        self._external_ids: dict[str, str] = {}  # external_id -> message id
        self._notifications: dict[str, Notification] = {}
        self._users: dict[str, User] = {}
        self._agent_profiles: dict[str, AgentProfile] = {}
        self._properties: dict[int, Property] = {}
        self._leads: dict[str, Lead] = {}
        self._lock = asyncio.Lock()

    # ==================== Conversation Operations ====================

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    async def find_active_conversation(self, phone_number: str) -> Conversation | None:
        # Newest insertion first so ties on updated_at go to the latest row
        candidates = [
            c
            for c in reversed(list(self._conversations.values()))
            if c.phone_number == phone_number and c.status == ConversationStatus.ACTIVE
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda c: c.updated_at)

    async def save_conversation(self, conversation: Conversation) -> Conversation:
        conversation.updated_at = datetime.utcnow()
        self._conversations[conversation.id] = conversation
        return conversation

    async def find_or_create_active_conversation(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        async with self._lock:
            existing = await self.find_active_conversation(conversation.phone_number)
            if existing is not None:
                return existing, False
            return await self.save_conversation(conversation), True

    async def backfill_assignment(
        self,
        conversation_id: str,
        agent_id: str | None,
        property_id: int | None,
    ) -> Conversation | None:
        async with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                return None
            if conversation.agent_id is None and agent_id is not None:
                conversation.agent_id = agent_id
            if conversation.property_id is None and property_id is not None:
                conversation.property_id = property_id
            return conversation

    async def touch_conversation(self, conversation_id: str) -> None:
        conversation = self._conversations.get(conversation_id)
        if conversation is not None:
            conversation.updated_at = datetime.utcnow()

    async def list_conversations(
        self,
        agent_id: str | None = None,
        status: ConversationStatus | None = None,
        limit: int = 50,
    ) -> list[Conversation]:
        convs = list(self._conversations.values())
        if agent_id:
            convs = [c for c in convs if c.agent_id == agent_id]
        if status:
            convs = [c for c in convs if c.status == status]
        convs.sort(key=lambda x: x.updated_at, reverse=True)
        return convs[:limit]

    # ==================== Message Operations ====================

    async def get_message_by_external_id(self, external_id: str) -> Message | None:
        message_id = self._external_ids.get(external_id)
        if message_id is None:
            return None
        return self._messages.get(message_id)

    async def save_message(self, message: Message) -> Message:
        async with self._lock:
            if message.external_id is not None:
                existing_id = self._external_ids.get(message.external_id)
                if existing_id is not None:
                    raise DuplicateMessage(
                        message.external_id,
                        conversation_id=self._messages[existing_id].conversation_id,
                    )
                self._external_ids[message.external_id] = message.id
            self._messages[message.id] = message
        return message

    async def get_messages(self, conversation_id: str, limit: int = 50) -> list[Message]:
        messages = [m for m in self._messages.values() if m.conversation_id == conversation_id]
        messages.sort(key=lambda x: x.created_at)
        return messages[-limit:]

    # ==================== Notification Operations ====================

    async def save_notification(self, notification: Notification) -> Notification:
        self._notifications[notification.id] = notification
        return notification

    async def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        notifications = [
            n for n in reversed(list(self._notifications.values())) if n.recipient_user_id == user_id
        ]
        if unread_only:
            notifications = [n for n in notifications if not n.is_read]
        notifications.sort(key=lambda x: x.created_at, reverse=True)
        return notifications[:limit]

    async def mark_notification_read(self, notification_id: str) -> Notification | None:
        notification = self._notifications.get(notification_id)
        if notification is None:
            return None
        if notification.read_at is None:
            notification.read_at = datetime.utcnow()
        return notification

    # ==================== Directory Lookups ====================

    async def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def find_user_by_phone(self, phones: list[str]) -> User | None:
        for user in self._users.values():
            if user.phone and user.phone in phones:
                return user
        return None

    async def get_property(self, property_id: int) -> Property | None:
        return self._properties.get(property_id)

    async def get_agent_profile(self, profile_id: str) -> AgentProfile | None:
        return self._agent_profiles.get(profile_id)

    async def find_latest_lead_by_phone(self, phones: list[str]) -> Lead | None:
        leads = [
            lead for lead in reversed(list(self._leads.values())) if lead.contact_phone in phones
        ]
        if not leads:
            return None
        return max(leads, key=lambda lead: lead.created_at)

    # ==================== Health Check ====================

    async def health_check(self) -> bool:
        return True

    # ==================== Development Helpers ====================

    async def save_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    async def save_agent_profile(self, profile: AgentProfile) -> AgentProfile:
        self._agent_profiles[profile.id] = profile
        return profile

    async def save_property(self, prop: Property) -> Property:
        self._properties[prop.id] = prop
        return prop

    async def save_lead(self, lead: Lead) -> Lead:
        self._leads[lead.id] = lead
        return lead

    async def clear_all(self) -> None:
        """Clear all data (for testing)."""
        self._conversations.clear()
        self._messages.clear()
        self._external_ids.clear()
        self._notifications.clear()
        self._users.clear()
        self._agent_profiles.clear()
        self._properties.clear()
        self._leads.clear()

    async def seed_demo_directory(self) -> None:
        """Create a demo agent with one listing for local testing."""
        await self.save_user(
            User(id="demo-agent", name="Demo Agent", email="agent@example.com", phone="0820000000")
        )
        await self.save_agent_profile(AgentProfile(id="demo-profile", user_id="demo-agent"))
        await self.save_property(
            Property(id=1, title="Demo Apartment", agent_profile_id="demo-profile")
        )
