"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends

from src.core.config import WebhookConfig, settings
from src.services.ingestion.gateway import WebhookGateway
from src.services.notifications.email import EmailTransport, get_email_transport
from src.services.notifications.fanout import NotificationFanout
from src.services.notifications.relay import RelayClient, get_relay_client
from src.services.routing.phone import PhoneNormalizer, get_phone_normalizer
from src.storage.base import StorageBackend
from src.storage.memory import InMemoryStorage


# Storage singleton
_storage: StorageBackend | None = None


def get_storage() -> StorageBackend:
    """Get the storage backend singleton.

    Uses Firestore in production or against the emulator, in-memory storage otherwise.
    """
    global _storage
    if _storage is None:
        if settings.gcp_project_id and (settings.is_production or settings.firestore_emulator_host):
            from src.storage.firestore import FirestoreStorage
            _storage = FirestoreStorage(project_id=settings.gcp_project_id)
        else:
            _storage = InMemoryStorage()
    return _storage


def get_webhook_config() -> WebhookConfig:
    return WebhookConfig.from_settings(settings)


# Type aliases for cleaner dependency injection
StorageDep = Annotated[StorageBackend, Depends(get_storage)]
WebhookConfigDep = Annotated[WebhookConfig, Depends(get_webhook_config)]
RelayDep = Annotated[RelayClient, Depends(get_relay_client)]
EmailDep = Annotated[EmailTransport, Depends(get_email_transport)]
PhoneDep = Annotated[PhoneNormalizer, Depends(get_phone_normalizer)]


def get_fanout(
    storage: StorageDep,
    relay: RelayDep,
    email: EmailDep,
    phones: PhoneDep,
    config: WebhookConfigDep,
) -> NotificationFanout:
    """Get notification fanout wired to the configured transports."""
    return NotificationFanout(
        storage=storage,
        relay=relay,
        email=email,
        phone_normalizer=phones,
        app_base_url=config.app_base_url,
    )


FanoutDep = Annotated[NotificationFanout, Depends(get_fanout)]


def get_gateway(
    config: WebhookConfigDep,
    storage: StorageDep,
    fanout: FanoutDep,
    phones: PhoneDep,
) -> WebhookGateway:
    """Get webhook gateway with its configuration and collaborators."""
    return WebhookGateway(
        config=config,
        storage=storage,
        fanout=fanout,
        phone_normalizer=phones,
    )


GatewayDep = Annotated[WebhookGateway, Depends(get_gateway)]
