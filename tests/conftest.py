"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from src.api.dependencies import get_storage, get_webhook_config
from src.api.main import create_app
from src.core.config import WebhookConfig
from src.models import AgentProfile, Lead, Property, User
from src.services.ingestion.gateway import WebhookGateway
from src.services.notifications.email import EmailTransport, get_email_transport
from src.services.notifications.fanout import NotificationFanout
from src.services.notifications.relay import RelayClient, get_relay_client
from src.services.routing.phone import CountryCodePolicy, PhoneNormalizer
from src.services.routing.resolver import ConversationResolver
from src.storage.memory import InMemoryStorage

VERIFY_TOKEN = "test-verify-token"
BASE_URL = "https://homes.test"

# Directory used across tests
AGENT_ID = "agent-1"
AGENT_PHONE = "082 111 0000"
LEAD_AGENT_ID = "agent-2"
OWNER_ID = "owner-1"
CONTACT_ID = "contact-1"
SENDER = "+27 82 555 0000"
SENDER_KEY = "27825550000"
AGENT_PROPERTY_ID = 456
OWNER_PROPERTY_ID = 789


def canonical_payload(
    content: str = "Hi, is this still available?",
    sender: str = SENDER,
    external_id: str | None = "wamid.123",
) -> dict:
    return {
        "event": "message.received",
        "timestamp": "2026-02-09T15:30:00Z",
        "data": {
            "id": "relay-msg-1",
            "channel": "whatsapp",
            "from": sender,
            "content": content,
            "type": "text",
            "externalId": external_id,
        },
    }


def legacy_payload(*messages: dict) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "waba-1",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"phone_number_id": "pn-1"},
                            "messages": list(messages),
                        },
                    }
                ],
            }
        ],
    }


def legacy_text(message_id: str, body: str, sender: str = SENDER_KEY) -> dict:
    return {
        "id": message_id,
        "from": sender,
        "timestamp": "1700000000",
        "type": "text",
        "text": {"body": body},
    }


@pytest.fixture
def storage():
    """Create in-memory storage for tests."""
    return InMemoryStorage()


@pytest_asyncio.fixture
async def directory(storage):
    """Seed agents, listings, a lead and a contact account."""
    await storage.save_user(
        User(id=AGENT_ID, name="Thandi", email="thandi@agency.test", phone=AGENT_PHONE)
    )
    await storage.save_user(
        User(id=LEAD_AGENT_ID, name="Pieter", email="pieter@agency.test", phone="0833330000")
    )
    await storage.save_user(User(id=OWNER_ID, name="Owner", email=None, phone="0844440000"))
    await storage.save_user(User(id=CONTACT_ID, name="Contact", phone=f"+{SENDER_KEY}"))
    await storage.save_agent_profile(AgentProfile(id="profile-1", user_id=AGENT_ID))
    await storage.save_property(
        Property(id=AGENT_PROPERTY_ID, title="Sea View Flat", agent_profile_id="profile-1")
    )
    await storage.save_property(
        Property(id=OWNER_PROPERTY_ID, title="Garden Cottage", owner_user_id=OWNER_ID)
    )
    await storage.save_lead(
        Lead(
            id="lead-old",
            contact_phone=SENDER_KEY,
            agent_id=OWNER_ID,
            created_at=datetime.utcnow() - timedelta(days=3),
        )
    )
    await storage.save_lead(
        Lead(id="lead-new", contact_phone=f"+{SENDER_KEY}", agent_id=LEAD_AGENT_ID)
    )
    return storage


@pytest.fixture
def phones():
    return PhoneNormalizer(CountryCodePolicy(calling_code="27"))


@pytest.fixture
def relay():
    """Relay client double that accepts every message."""
    client = AsyncMock(spec=RelayClient)
    client.is_configured = True
    client.send_text.return_value = {}
    return client


@pytest.fixture
def email():
    """Email transport double that accepts every message."""
    transport = AsyncMock(spec=EmailTransport)
    transport.is_configured = True
    return transport


@pytest.fixture
def resolver(storage, phones):
    return ConversationResolver(storage, phones)


@pytest.fixture
def fanout(storage, relay, email, phones):
    return NotificationFanout(
        storage=storage,
        relay=relay,
        email=email,
        phone_normalizer=phones,
        app_base_url=BASE_URL,
    )


@pytest.fixture
def webhook_config():
    return WebhookConfig(verify_token=VERIFY_TOKEN, app_base_url=BASE_URL)


@pytest.fixture
def gateway(webhook_config, storage, fanout, phones):
    return WebhookGateway(
        config=webhook_config,
        storage=storage,
        fanout=fanout,
        phone_normalizer=phones,
    )


@pytest.fixture
def app(storage, relay, email, webhook_config):
    """Create test application wired to test doubles."""
    app = create_app()
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_relay_client] = lambda: relay
    app.dependency_overrides[get_email_transport] = lambda: email
    app.dependency_overrides[get_webhook_config] = lambda: webhook_config
    return app


@pytest_asyncio.fixture
async def client(app):
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
