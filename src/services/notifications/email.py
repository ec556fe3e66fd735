"""SendGrid email transport for agent notifications."""

import asyncio
import re

import structlog
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Email, Mail, To

from src.core.config import settings
from src.core.exceptions import ChannelError

logger = structlog.get_logger()

HTML_TAG = re.compile(r"<[^<]+?>")


class EmailTransport:
    """Sends HTML email through SendGrid.

    The SendGrid client is synchronous, so sends run in a worker thread and are
    bounded by ``timeout`` seconds.
    """

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        timeout: float | None = None,
    ) -> None:
        api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self.from_email = from_email or settings.email_from
        self.from_name = from_name or settings.email_from_name
        self.timeout = timeout or settings.email_timeout_seconds

        self._client: SendGridAPIClient | None = None
        if api_key:
            self._client = SendGridAPIClient(api_key)
            logger.info("SendGrid email transport initialized", from_email=self.from_email)
        else:
            logger.warning("SendGrid API key not configured, email notifications disabled")

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def send(self, to: str, subject: str, html: str) -> None:
        """Send one email.

        Raises:
            ChannelError: transport not configured, timed out, failed or non-2xx
        """
        if self._client is None:
            raise ChannelError(
                "Email transport not configured",
                channel="email",
                details={"reason": "missing_api_key"},
            )

        message = Mail(
            from_email=Email(self.from_email, self.from_name),
            to_emails=To(to),
            subject=subject,
            html_content=html,
            plain_text_content=HTML_TAG.sub("", html),
        )

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self._client.send, message),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ChannelError(
                "Email send timed out",
                channel="email",
                details={"timeout_seconds": self.timeout},
            ) from e
        except Exception as e:
            # python-http-client raises HTTPError subclasses for 4xx/5xx
            raise ChannelError(
                f"Email send failed: {e}",
                channel="email",
                details={"error_type": type(e).__name__},
            ) from e

        if not 200 <= response.status_code < 300:
            raise ChannelError(
                f"Email rejected with status {response.status_code}",
                channel="email",
                details={"status_code": response.status_code},
            )

        logger.info("Sent notification email", subject=subject)


# Singleton instance
_email_transport: EmailTransport | None = None


def get_email_transport() -> EmailTransport:
    """Get or create the email transport singleton."""
    global _email_transport
    if _email_transport is None:
        _email_transport = EmailTransport()
    return _email_transport
