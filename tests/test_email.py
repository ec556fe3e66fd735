"""Tests for the SendGrid email transport."""

import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from src.core.exceptions import ChannelError
from src.services.notifications.email import EmailTransport


@pytest.fixture
def transport():
    transport = EmailTransport(
        api_key="SG.test",
        from_email="noreply@homes.test",
        from_name="Homes",
        timeout=2.0,
    )
    transport._client = MagicMock()
    return transport


@pytest.mark.asyncio
async def test_send_builds_mail(transport):
    transport._client.send.return_value = SimpleNamespace(status_code=202)

    await transport.send("thandi@agency.test", "New WhatsApp lead", "<p>Hello <b>there</b></p>")

    [mail] = transport._client.send.call_args.args
    body = mail.get()
    assert body["subject"] == "New WhatsApp lead"
    assert body["from"]["email"] == "noreply@homes.test"
    assert body["personalizations"][0]["to"][0]["email"] == "thandi@agency.test"
    contents = {c["type"]: c["value"] for c in body["content"]}
    assert contents["text/plain"] == "Hello there"
    assert contents["text/html"] == "<p>Hello <b>there</b></p>"


@pytest.mark.asyncio
async def test_rejected_send_raises(transport):
    transport._client.send.return_value = SimpleNamespace(status_code=500)

    with pytest.raises(ChannelError) as exc_info:
        await transport.send("thandi@agency.test", "Subject", "<p>x</p>")

    assert exc_info.value.details["status_code"] == 500


@pytest.mark.asyncio
async def test_client_error_raises(transport):
    transport._client.send.side_effect = RuntimeError("connection reset")

    with pytest.raises(ChannelError):
        await transport.send("thandi@agency.test", "Subject", "<p>x</p>")


@pytest.mark.asyncio
async def test_unconfigured_transport_raises():
    transport = EmailTransport(api_key="")

    assert not transport.is_configured
    with pytest.raises(ChannelError):
        await transport.send("thandi@agency.test", "Subject", "<p>x</p>")


@pytest.mark.asyncio
async def test_timeout_raises_channel_error(transport):
    transport.timeout = 0.05
    transport._client.send.side_effect = lambda mail: time.sleep(0.5)

    with pytest.raises(ChannelError) as exc_info:
        await transport.send("thandi@agency.test", "Subject", "<p>x</p>")

    assert exc_info.value.details["timeout_seconds"] == 0.05
