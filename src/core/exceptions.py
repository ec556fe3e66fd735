"""Custom exceptions for the application."""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigurationError(AppException):
    """Raised when there's a configuration problem."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class PayloadError(AppException):
    """Raised when a webhook body cannot be parsed into a known shape."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="PAYLOAD_ERROR", details=details)


class DuplicateMessage(AppException):
    """Raised by storage when an external message id has already been stored."""

    def __init__(self, external_id: str, conversation_id: str | None = None) -> None:
        super().__init__(
            f"Message already stored: {external_id}",
            code="DUPLICATE_MESSAGE",
            details={"external_id": external_id, "conversation_id": conversation_id},
        )
        self.external_id = external_id
        self.conversation_id = conversation_id


class PersistenceError(AppException):
    """Raised when a storage write fails."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(
            message,
            code="PERSISTENCE_ERROR",
            details={"operation": operation} if operation else {},
        )


class NotFound(AppException):
    """Raised when a requested record does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(
            f"{kind} not found: {record_id}",
            code="NOT_FOUND",
            details={"kind": kind, "id": record_id},
        )


class ChannelError(AppException):
    """Raised when channel operations fail."""

    def __init__(self, message: str, channel: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            code="CHANNEL_ERROR",
            details={"channel": channel, **(details or {})},
        )
