"""Inbox endpoints polled by the agent dashboard."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Query

from src.api.dependencies import StorageDep
from src.core.exceptions import NotFound
from src.models import Conversation, ConversationStatus, Message, Notification

logger = structlog.get_logger()

router = APIRouter(prefix="/inbox", tags=["Inbox"])


# ==================== Conversation Endpoints ====================


@router.get("/conversations", response_model=list[Conversation])
async def list_conversations(
    storage: StorageDep,
    agent_id: str | None = None,
    status: ConversationStatus | None = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[Conversation]:
    """List conversations, most recently active first."""
    return await storage.list_conversations(agent_id=agent_id, status=status, limit=limit)


@router.get("/conversations/{conversation_id}", response_model=Conversation)
async def get_conversation(conversation_id: str, storage: StorageDep) -> Conversation:
    """Get a conversation by ID."""
    conversation = await storage.get_conversation(conversation_id)
    if conversation is None:
        raise NotFound("Conversation", conversation_id)
    return conversation


@router.get("/conversations/{conversation_id}/messages", response_model=list[Message])
async def get_conversation_messages(
    conversation_id: str,
    storage: StorageDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> list[Message]:
    """Get the latest messages of a conversation, oldest first."""
    conversation = await storage.get_conversation(conversation_id)
    if conversation is None:
        raise NotFound("Conversation", conversation_id)
    return await storage.get_messages(conversation_id, limit=limit)


# ==================== Notification Endpoints ====================


@router.get("/notifications", response_model=list[Notification])
async def list_notifications(
    storage: StorageDep,
    user_id: str,
    unread_only: bool = False,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[Notification]:
    """List in-app notifications for a user, newest first."""
    return await storage.list_notifications(user_id, unread_only=unread_only, limit=limit)


@router.post("/notifications/{notification_id}/read", response_model=Notification)
async def mark_notification_read(notification_id: str, storage: StorageDep) -> Notification:
    """Mark a notification as read."""
    notification = await storage.mark_notification_read(notification_id)
    if notification is None:
        raise NotFound("Notification", notification_id)
    logger.debug("Notification marked read", notification_id=notification_id)
    return notification
