"""Conversation models for inbound chat routing."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ConversationStatus(str, Enum):
    """Status of a conversation."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class Conversation(BaseModel):
    """A chat thread with one contact phone number."""

    id: str = Field(..., description="Unique conversation identifier")
    phone_number: str = Field(..., description="Normalized phone, the directory key")

    # Platform account of the contact, attribution only
    user_id: str | None = None

    # Ownership, backfilled once and never overwritten
    agent_id: str | None = None
    property_id: int | None = None

    status: ConversationStatus = ConversationStatus.ACTIVE

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_assigned(self) -> bool:
        return self.agent_id is not None


class Resolution(BaseModel):
    """Outcome of resolving which conversation and agent a message belongs to."""

    conversation_id: str
    agent_id: str | None = None
    property_id: int | None = None
    created: bool = False
