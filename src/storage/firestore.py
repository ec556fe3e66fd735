"""Firestore storage backend for production."""

import hashlib
import os
from datetime import datetime

import structlog

from src.core.exceptions import DuplicateMessage, PersistenceError
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

logger = structlog.get_logger()


class FirestoreStorage(StorageBackend):
    """Firestore storage implementation for production.

    Collection structure:
    - conversations/{conversation_id}
    - messages/{message_id}
    - message_external_ids/{sha256(external_id)}  (uniqueness marker)
    - active_conversations/{sha256(phone_number)}  (one active conversation per phone)
    - notifications/{notification_id}
    - users/{user_id}, agent_profiles/{profile_id}, properties/{property_id}, leads/{lead_id}
    """

    def __init__(self, project_id: str | None = None) -> None:
        self._project_id = project_id
        self._db = None
        self._firestore = None
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        """Lazy initialization of Firestore client."""
        if self._initialized:
            return

        try:
            from google.cloud import firestore

            # Check if using emulator
            if os.environ.get("FIRESTORE_EMULATOR_HOST"):
                logger.info("Using Firestore emulator")

            self._firestore = firestore
            self._db = firestore.AsyncClient(project=self._project_id)
            self._initialized = True
            logger.info("Firestore client initialized", project=self._project_id)
        except Exception as e:
            logger.error("Failed to initialize Firestore", error=str(e))
            raise

    @staticmethod
    def _marker_key(value: str) -> str:
        # Provider ids and phones may contain characters Firestore rejects in document ids
        return hashlib.sha256(value.encode("utf-8")).hexdigest()

    # ==================== Conversation Operations ====================

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        await self._ensure_initialized()
        doc = await self._db.collection("conversations").document(conversation_id).get()
        if not doc.exists:
            return None
        return Conversation(**doc.to_dict())

    async def find_active_conversation(self, phone_number: str) -> Conversation | None:
        await self._ensure_initialized()

        query = (
            self._db.collection("conversations")
            .where("phone_number", "==", phone_number)
            .where("status", "==", ConversationStatus.ACTIVE.value)
            .order_by("updated_at", direction="DESCENDING")
            .limit(1)
        )

        docs = await query.get()
        for doc in docs:
            return Conversation(**doc.to_dict())
        return None

    async def save_conversation(self, conversation: Conversation) -> Conversation:
        await self._ensure_initialized()
        conversation.updated_at = datetime.utcnow()
        await self._db.collection("conversations").document(conversation.id).set(
            conversation.model_dump(mode="json")
        )
        return conversation

    async def find_or_create_active_conversation(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        await self._ensure_initialized()
        marker_ref = self._db.collection("active_conversations").document(
            self._marker_key(conversation.phone_number)
        )
        conversations = self._db.collection("conversations")
        transaction = self._db.transaction()

        # Firestore retries the function when a concurrent writer touches the marker
        @self._firestore.async_transactional
        async def _find_or_create(transaction) -> tuple[Conversation, bool]:
            marker = await marker_ref.get(transaction=transaction)
            if marker.exists:
                current_ref = conversations.document(marker.to_dict()["conversation_id"])
                current = await current_ref.get(transaction=transaction)
                if current.exists:
                    existing = Conversation(**current.to_dict())
                    if existing.status == ConversationStatus.ACTIVE:
                        return existing, False

            # No marker, or it points at a conversation that has since been archived
            conversation.updated_at = datetime.utcnow()
            transaction.set(
                marker_ref,
                {"phone_number": conversation.phone_number, "conversation_id": conversation.id},
            )
            transaction.set(
                conversations.document(conversation.id),
                conversation.model_dump(mode="json"),
            )
            return conversation, True

        try:
            return await _find_or_create(transaction)
        except Exception as e:
            raise PersistenceError(
                f"Failed to create conversation: {e}",
                operation="find_or_create_active_conversation",
            ) from e

    async def backfill_assignment(
        self,
        conversation_id: str,
        agent_id: str | None,
        property_id: int | None,
    ) -> Conversation | None:
        await self._ensure_initialized()
        ref = self._db.collection("conversations").document(conversation_id)
        transaction = self._db.transaction()

        @self._firestore.async_transactional
        async def _backfill(transaction) -> Conversation | None:
            snapshot = await ref.get(transaction=transaction)
            if not snapshot.exists:
                return None
            data = snapshot.to_dict()
            updates = {}
            if data.get("agent_id") is None and agent_id is not None:
                updates["agent_id"] = agent_id
            if data.get("property_id") is None and property_id is not None:
                updates["property_id"] = property_id
            if updates:
                transaction.update(ref, updates)
                data.update(updates)
            return Conversation(**data)

        return await _backfill(transaction)

    async def touch_conversation(self, conversation_id: str) -> None:
        await self._ensure_initialized()
        await self._db.collection("conversations").document(conversation_id).update(
            {"updated_at": datetime.utcnow().isoformat()}
        )

    async def list_conversations(
        self,
        agent_id: str | None = None,
        status: ConversationStatus | None = None,
        limit: int = 50,
    ) -> list[Conversation]:
        await self._ensure_initialized()

        query = self._db.collection("conversations")

        if agent_id:
            query = query.where("agent_id", "==", agent_id)
        if status:
            query = query.where("status", "==", ConversationStatus(status).value)

        query = query.order_by("updated_at", direction="DESCENDING").limit(limit)
        docs = await query.get()

        return [Conversation(**doc.to_dict()) for doc in docs]

    # ==================== Message Operations ====================

    async def get_message_by_external_id(self, external_id: str) -> Message | None:
        await self._ensure_initialized()
        marker = (
            await self._db.collection("message_external_ids")
            .document(self._marker_key(external_id))
            .get()
        )
        if not marker.exists:
            return None
        doc = await self._db.collection("messages").document(marker.to_dict()["message_id"]).get()
        if not doc.exists:
            return None
        return Message(**doc.to_dict())

    async def save_message(self, message: Message) -> Message:
        await self._ensure_initialized()
        from google.api_core.exceptions import Conflict

        message_ref = self._db.collection("messages").document(message.id)

        if message.external_id is None:
            await message_ref.set(message.model_dump(mode="json"))
            return message

        # create() fails the whole batch if the marker exists
        marker_ref = self._db.collection("message_external_ids").document(
            self._marker_key(message.external_id)
        )
        batch = self._db.batch()
        batch.create(
            marker_ref,
            {
                "external_id": message.external_id,
                "message_id": message.id,
                "conversation_id": message.conversation_id,
            },
        )
        batch.set(message_ref, message.model_dump(mode="json"))

        try:
            await batch.commit()
        except Conflict:
            existing = await marker_ref.get()
            conversation_id = existing.to_dict().get("conversation_id") if existing.exists else None
            raise DuplicateMessage(message.external_id, conversation_id=conversation_id)
        except Exception as e:
            raise PersistenceError(f"Failed to store message: {e}", operation="save_message") from e

        return message

    async def get_messages(self, conversation_id: str, limit: int = 50) -> list[Message]:
        await self._ensure_initialized()

        query = (
            self._db.collection("messages")
            .where("conversation_id", "==", conversation_id)
            .order_by("created_at", direction="DESCENDING")
            .limit(limit)
        )

        docs = await query.get()
        messages = [Message(**doc.to_dict()) for doc in docs]
        # Reverse to get chronological order
        return list(reversed(messages))

    # ==================== Notification Operations ====================

    async def save_notification(self, notification: Notification) -> Notification:
        await self._ensure_initialized()
        await self._db.collection("notifications").document(notification.id).set(
            notification.model_dump(mode="json")
        )
        return notification

    async def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        await self._ensure_initialized()

        query = self._db.collection("notifications").where("recipient_user_id", "==", user_id)
        if unread_only:
            query = query.where("read_at", "==", None)

        query = query.order_by("created_at", direction="DESCENDING").limit(limit)
        docs = await query.get()
        return [Notification(**doc.to_dict()) for doc in docs]

    async def mark_notification_read(self, notification_id: str) -> Notification | None:
        await self._ensure_initialized()
        ref = self._db.collection("notifications").document(notification_id)
        doc = await ref.get()
        if not doc.exists:
            return None

        notification = Notification(**doc.to_dict())
        if notification.read_at is None:
            notification.read_at = datetime.utcnow()
            await ref.update({"read_at": notification.read_at.isoformat()})
        return notification

    # ==================== Directory Lookups ====================

    async def get_user(self, user_id: str) -> User | None:
        await self._ensure_initialized()
        doc = await self._db.collection("users").document(user_id).get()
        if not doc.exists:
            return None
        return User(**doc.to_dict())

    async def find_user_by_phone(self, phones: list[str]) -> User | None:
        await self._ensure_initialized()
        docs = await self._db.collection("users").where("phone", "in", phones).limit(1).get()
        for doc in docs:
            return User(**doc.to_dict())
        return None

    async def get_property(self, property_id: int) -> Property | None:
        await self._ensure_initialized()
        doc = await self._db.collection("properties").document(str(property_id)).get()
        if not doc.exists:
            return None
        return Property(**doc.to_dict())

    async def get_agent_profile(self, profile_id: str) -> AgentProfile | None:
        await self._ensure_initialized()
        doc = await self._db.collection("agent_profiles").document(profile_id).get()
        if not doc.exists:
            return None
        return AgentProfile(**doc.to_dict())

    async def find_latest_lead_by_phone(self, phones: list[str]) -> Lead | None:
        await self._ensure_initialized()

        query = (
            self._db.collection("leads")
            .where("contact_phone", "in", phones)
            .order_by("created_at", direction="DESCENDING")
            .limit(1)
        )

        docs = await query.get()
        for doc in docs:
            return Lead(**doc.to_dict())
        return None

    # ==================== Health Check ====================

    async def health_check(self) -> bool:
        try:
            await self._ensure_initialized()
            # Simple health check - try to access a collection
            await self._db.collection("_health").document("check").get()
            return True
        except Exception as e:
            logger.error("Firestore health check failed", error=str(e))
            return False
