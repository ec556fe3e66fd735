"""Chat relay client for outbound agent notifications."""

from typing import Any

import httpx
import structlog

from src.core.config import settings
from src.core.exceptions import ChannelError

logger = structlog.get_logger()


class RelayClient:
    """Sends text messages through the chat relay's HTTP API.

    The relay accepts ``{channel, to, content}`` with an ``X-API-Key`` header
    and answers any 2xx on acceptance.
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        channel: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url if url is not None else settings.relay_url
        self.api_key = api_key if api_key is not None else settings.relay_api_key
        self.channel = channel or settings.relay_channel
        self.timeout = timeout or settings.relay_timeout_seconds
        self._client = client

        if not self.url:
            logger.warning("Chat relay URL not configured")

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    async def send_text(self, to: str, content: str) -> dict[str, Any]:
        """Send a text message.

        Args:
            to: Recipient phone, normalized
            content: Message text

        Returns:
            Relay response body (empty dict when it isn't JSON)

        Raises:
            ChannelError: relay not configured, unreachable, timed out or non-2xx
        """
        if not self.is_configured:
            raise ChannelError(
                "Chat relay not configured",
                channel="relay",
                details={"reason": "missing_url"},
            )

        payload = {"channel": self.channel, "to": to, "content": content}
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.url, json=payload, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ChannelError(
                f"Chat relay request failed: {e}",
                channel="relay",
                details={"error_type": type(e).__name__},
            ) from e

        if not response.is_success:
            raise ChannelError(
                f"Chat relay rejected message with status {response.status_code}",
                channel="relay",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )

        logger.info("Sent relay message", status_code=response.status_code)

        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}


# Singleton instance
_relay_client: RelayClient | None = None


def get_relay_client() -> RelayClient:
    """Get or create the relay client singleton."""
    global _relay_client
    if _relay_client is None:
        _relay_client = RelayClient()
    return _relay_client
