"""Message models for the chat relay channel."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ChannelType(str, Enum):
    """Supported communication channels."""

    WHATSAPP = "whatsapp"


class MessageDirection(str, Enum):
    """Direction of the message."""

    INBOUND = "inbound"  # From contact
    OUTBOUND = "outbound"  # To contact


class MessageStatus(str, Enum):
    """Delivery status of a stored message."""

    RECEIVED = "received"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class MessageType(str, Enum):
    """Type of message content."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"


class InboundMessage(BaseModel):
    """Canonical inbound message, independent of the wire shape it arrived in."""

    # Provider message id; None only when the delivery carried no id at all
    external_id: str | None = None
    channel: ChannelType = ChannelType.WHATSAPP
    from_phone: str = Field(..., description="Sender phone as delivered, not normalized")
    content: str
    type: str = MessageType.TEXT.value
    received_at: datetime


class Message(BaseModel):
    """A message persisted against a conversation."""

    id: str = Field(..., description="Unique message identifier")
    conversation_id: str = Field(..., description="Parent conversation ID")

    sender_phone: str = Field(..., description="Normalized sender phone")
    content: str
    direction: MessageDirection = MessageDirection.INBOUND

    # Unique across all messages when present
    external_id: str | None = None
    status: MessageStatus = MessageStatus.RECEIVED

    created_at: datetime = Field(default_factory=datetime.utcnow)
    # Provider send time, as reported in the delivery
    received_at: datetime | None = None
