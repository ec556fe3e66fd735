"""Tests for the inbox polling endpoints."""

import pytest

from conftest import AGENT_ID, AGENT_PROPERTY_ID, canonical_payload


async def deliver(client, content: str = f"/properties/{AGENT_PROPERTY_ID}") -> str:
    response = await client.post("/webhooks/whatsapp", json=canonical_payload(content=content))
    return response.json()["conversationId"]


@pytest.mark.asyncio
async def test_list_conversations_for_agent(client, directory):
    conversation_id = await deliver(client)

    response = await client.get("/inbox/conversations", params={"agent_id": AGENT_ID})

    assert response.status_code == 200
    [conversation] = response.json()
    assert conversation["id"] == conversation_id
    assert conversation["property_id"] == AGENT_PROPERTY_ID

    response = await client.get("/inbox/conversations", params={"agent_id": "someone-else"})
    assert response.json() == []


@pytest.mark.asyncio
async def test_get_conversation_and_messages(client, directory):
    conversation_id = await deliver(client)

    response = await client.get(f"/inbox/conversations/{conversation_id}")
    assert response.status_code == 200
    assert response.json()["agent_id"] == AGENT_ID

    response = await client.get(f"/inbox/conversations/{conversation_id}/messages")
    assert response.status_code == 200
    [message] = response.json()
    assert message["external_id"] == "wamid.123"
    assert message["direction"] == "inbound"


@pytest.mark.asyncio
async def test_unknown_conversation_is_404(client):
    response = await client.get("/inbox/conversations/nope")
    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"

    response = await client.get("/inbox/conversations/nope/messages")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_notifications_and_mark_read(client, directory):
    await deliver(client)

    response = await client.get("/inbox/notifications", params={"user_id": AGENT_ID})
    [notification] = response.json()
    assert notification["title"] == "New WhatsApp message"
    assert notification["read_at"] is None

    response = await client.post(f"/inbox/notifications/{notification['id']}/read")
    assert response.status_code == 200
    assert response.json()["read_at"] is not None

    response = await client.get(
        "/inbox/notifications", params={"user_id": AGENT_ID, "unread_only": True}
    )
    assert response.json() == []


@pytest.mark.asyncio
async def test_mark_unknown_notification_is_404(client):
    response = await client.post("/inbox/notifications/nope/read")
    assert response.status_code == 404
