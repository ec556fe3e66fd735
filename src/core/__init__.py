"""Core module - configuration and utilities."""

from src.core.config import WebhookConfig, settings
from src.core.exceptions import (
    AppException,
    ChannelError,
    ConfigurationError,
    DuplicateMessage,
    NotFound,
    PayloadError,
    PersistenceError,
)

__all__ = [
    "settings",
    "WebhookConfig",
    "AppException",
    "ChannelError",
    "ConfigurationError",
    "DuplicateMessage",
    "NotFound",
    "PayloadError",
    "PersistenceError",
]
