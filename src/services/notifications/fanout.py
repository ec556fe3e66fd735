"""Notification fanout - tells the owning agent about a new inbound message."""

import asyncio
import html
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable
from uuid import uuid4

import structlog

from src.core.config import settings
from src.models import InboundMessage, Notification, Resolution, User
from src.services.notifications.email import EmailTransport
from src.services.notifications.relay import RelayClient
from src.services.routing.phone import PhoneNormalizer, get_phone_normalizer
from src.storage.base import StorageBackend

logger = structlog.get_logger()

PREVIEW_LENGTH = 150
IN_APP_PREVIEW_LENGTH = 100


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Truncate to ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class DispatchOutcome(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FanoutReport:
    """Per-channel outcome of one fanout run."""

    in_app: DispatchOutcome = DispatchOutcome.SKIPPED
    relay: DispatchOutcome = DispatchOutcome.SKIPPED
    email: DispatchOutcome = DispatchOutcome.SKIPPED


class NotificationFanout:
    """Dispatches in-app, relay and email notifications to the conversation's agent.

    Each channel is attempted independently; a failure in one is logged and
    never affects the others, the stored message or the webhook response.
    """

    def __init__(
        self,
        storage: StorageBackend,
        relay: RelayClient | None = None,
        email: EmailTransport | None = None,
        phone_normalizer: PhoneNormalizer | None = None,
        app_base_url: str | None = None,
    ) -> None:
        self.storage = storage
        self.relay = relay
        self.email = email
        self.phones = phone_normalizer or get_phone_normalizer()
        base_url = app_base_url if app_base_url is not None else settings.app_base_url
        self.app_base_url = base_url.rstrip("/")

    @staticmethod
    def conversation_link(conversation_id: str) -> str:
        return f"/agent/conversations/{conversation_id}"

    def conversation_url(self, conversation_id: str) -> str:
        return f"{self.app_base_url}{self.conversation_link(conversation_id)}"

    async def dispatch(
        self,
        resolution: Resolution,
        message: InboundMessage,
        sender_phone: str,
    ) -> FanoutReport:
        """Notify the agent owning ``resolution``, if any.

        Args:
            resolution: Conversation ownership after routing
            message: The inbound message that was stored
            sender_phone: Sender's normalized phone

        Returns:
            FanoutReport with one outcome per channel
        """
        report = FanoutReport()
        if resolution.agent_id is None:
            return report

        agent = await self._load_agent(resolution.agent_id)
        property_title = await self._load_property_title(resolution.property_id)

        in_app, relay, email = await asyncio.gather(
            self._attempt("in_app", self._notify_in_app(resolution, message, sender_phone)),
            self._attempt(
                "relay",
                self._notify_relay(agent, resolution, message, sender_phone, property_title),
            ),
            self._attempt(
                "email",
                self._notify_email(agent, resolution, message, sender_phone, property_title),
            ),
        )
        report.in_app, report.relay, report.email = in_app, relay, email

        logger.info(
            "Notification fanout finished",
            conversation_id=resolution.conversation_id,
            agent_id=resolution.agent_id,
            in_app=in_app.value,
            relay=relay.value,
            email=email.value,
        )
        return report

    async def _attempt(
        self,
        channel: str,
        notify: Awaitable[DispatchOutcome],
    ) -> DispatchOutcome:
        try:
            return await notify
        except Exception as e:
            logger.error(
                "Agent notification failed",
                channel=channel,
                error=str(e),
                exc_info=True,
            )
            return DispatchOutcome.FAILED

    async def _load_agent(self, agent_id: str) -> User | None:
        try:
            agent = await self.storage.get_user(agent_id)
        except Exception as e:
            logger.error("Failed to load agent", agent_id=agent_id, error=str(e))
            return None
        if agent is None:
            logger.warning("Assigned agent not found", agent_id=agent_id)
        return agent

    async def _load_property_title(self, property_id: int | None) -> str | None:
        if property_id is None:
            return None
        try:
            prop = await self.storage.get_property(property_id)
        except Exception as e:
            logger.warning("Failed to load property title", property_id=property_id, error=str(e))
            return None
        if prop is None or not prop.title:
            return None
        return prop.title

    # ==================== Channels ====================

    async def _notify_in_app(
        self,
        resolution: Resolution,
        message: InboundMessage,
        sender_phone: str,
    ) -> DispatchOutcome:
        notification = Notification(
            id=str(uuid4()),
            recipient_user_id=resolution.agent_id,
            type="whatsapp",
            title="New WhatsApp message",
            body=f"From {sender_phone}: {message.content[:IN_APP_PREVIEW_LENGTH]}",
            link=self.conversation_link(resolution.conversation_id),
        )
        await self.storage.save_notification(notification)
        return DispatchOutcome.SENT

    async def _notify_relay(
        self,
        agent: User | None,
        resolution: Resolution,
        message: InboundMessage,
        sender_phone: str,
        property_title: str | None,
    ) -> DispatchOutcome:
        if self.relay is None or not self.relay.is_configured:
            return DispatchOutcome.SKIPPED
        if agent is None or not agent.phone:
            logger.info("Agent has no phone number", agent_id=resolution.agent_id)
            return DispatchOutcome.SKIPPED

        if self.phones.same_number(agent.phone, sender_phone):
            logger.info("Skipping relay notification, agent is the sender", agent_id=agent.id)
            return DispatchOutcome.SKIPPED

        lines = ["*New WhatsApp lead*", "", f"From: +{sender_phone}"]
        if property_title:
            lines.append(f"Property: {property_title}")
        lines += [
            "",
            "Message:",
            f'"{preview(message.content)}"',
            "",
            f"Reply here: {self.conversation_url(resolution.conversation_id)}",
        ]

        await self.relay.send_text(self.phones.normalize(agent.phone), "\n".join(lines))
        return DispatchOutcome.SENT

    async def _notify_email(
        self,
        agent: User | None,
        resolution: Resolution,
        message: InboundMessage,
        sender_phone: str,
        property_title: str | None,
    ) -> DispatchOutcome:
        if self.email is None or not self.email.is_configured:
            return DispatchOutcome.SKIPPED
        if agent is None or not agent.email:
            logger.info("Agent has no email address", agent_id=resolution.agent_id)
            return DispatchOutcome.SKIPPED

        subject = "New WhatsApp lead"
        if property_title:
            subject = f"{subject}: {property_title}"

        url = self.conversation_url(resolution.conversation_id)
        about = f" about <strong>{html.escape(property_title)}</strong>" if property_title else ""
        body = (
            f"<p>Hi {html.escape(agent.name or 'there')},</p>"
            f"<p>You have a new WhatsApp inquiry from <strong>+{html.escape(sender_phone)}</strong>{about}:</p>"
            f"<blockquote>{html.escape(preview(message.content))}</blockquote>"
            f'<p><a href="{html.escape(url)}">Reply now</a></p>'
        )

        await self.email.send(agent.email, subject, body)
        return DispatchOutcome.SENT
