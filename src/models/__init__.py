"""Data models for the application."""

from src.models.conversation import Conversation, ConversationStatus, Resolution
from src.models.directory import AgentProfile, Lead, Property, User
from src.models.message import (
    ChannelType,
    InboundMessage,
    Message,
    MessageDirection,
    MessageStatus,
    MessageType,
)
from src.models.notification import Notification
from src.models.webhook import (
    CanonicalPayload,
    DeliveryResult,
    DeliveryStatus,
    LegacyPayload,
    WebhookPayload,
)

__all__ = [
    # Conversation
    "Conversation",
    "ConversationStatus",
    "Resolution",
    # Directory
    "AgentProfile",
    "Lead",
    "Property",
    "User",
    # Message
    "ChannelType",
    "InboundMessage",
    "Message",
    "MessageDirection",
    "MessageStatus",
    "MessageType",
    # Notification
    "Notification",
    # Webhook
    "CanonicalPayload",
    "DeliveryResult",
    "DeliveryStatus",
    "LegacyPayload",
    "WebhookPayload",
]
