"""Abstract base class for storage backends."""

from abc import ABC, abstractmethod

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


class StorageBackend(ABC):
    """Abstract storage backend interface."""

    # ==================== Conversation Operations ====================

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by ID."""
        ...

    @abstractmethod
    async def find_active_conversation(self, phone_number: str) -> Conversation | None:
        """Get the most recently updated active conversation for a directory key."""
        ...

    @abstractmethod
    async def save_conversation(self, conversation: Conversation) -> Conversation:
        """Save or update a conversation."""
        ...

    @abstractmethod
    async def find_or_create_active_conversation(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        """Atomically get the active conversation for ``conversation.phone_number`` or save this one.

        Returns (conversation, created). When another writer created an active
        conversation for the same phone first, that one is returned unchanged.
        """
        ...

    @abstractmethod
    async def backfill_assignment(
        self,
        conversation_id: str,
        agent_id: str | None,
        property_id: int | None,
    ) -> Conversation | None:
        """Set agent/property on a conversation, only where currently unset.

        Returns the conversation as stored afterwards, or None if it does not exist.
        """
        ...

    @abstractmethod
    async def touch_conversation(self, conversation_id: str) -> None:
        """Bump the conversation's updated_at."""
        ...

    @abstractmethod
    async def list_conversations(
        self,
        agent_id: str | None = None,
        status: ConversationStatus | None = None,
        limit: int = 50,
    ) -> list[Conversation]:
        """List conversations, most recently updated first."""
        ...

    # ==================== Message Operations ====================

    @abstractmethod
    async def get_message_by_external_id(self, external_id: str) -> Message | None:
        """Get a stored message by its provider id, on any conversation."""
        ...

    @abstractmethod
    async def save_message(self, message: Message) -> Message:
        """Insert a message.

        Raises:
            DuplicateMessage: if a message with the same external_id exists
        """
        ...

    @abstractmethod
    async def get_messages(self, conversation_id: str, limit: int = 50) -> list[Message]:
        """Get messages for a conversation in chronological order."""
        ...

    # ==================== Notification Operations ====================

    @abstractmethod
    async def save_notification(self, notification: Notification) -> Notification:
        """Insert an in-app notification."""
        ...

    @abstractmethod
    async def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        """List notifications for a user, newest first."""
        ...

    @abstractmethod
    async def mark_notification_read(self, notification_id: str) -> Notification | None:
        """Mark a notification as read."""
        ...

    # ==================== Directory Lookups ====================

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        """Get a user by ID."""
        ...

    @abstractmethod
    async def find_user_by_phone(self, phones: list[str]) -> User | None:
        """Get the first user whose stored phone equals one of the given forms."""
        ...

    @abstractmethod
    async def get_property(self, property_id: int) -> Property | None:
        """Get a property by ID."""
        ...

    @abstractmethod
    async def get_agent_profile(self, profile_id: str) -> AgentProfile | None:
        """Get an agent profile by ID."""
        ...

    @abstractmethod
    async def find_latest_lead_by_phone(self, phones: list[str]) -> Lead | None:
        """Get the most recently created lead whose contact phone matches."""
        ...

    # ==================== Health Check ====================

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if storage is healthy."""
        ...
