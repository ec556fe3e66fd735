"""Agent notifications - in-app, chat relay and email."""

from src.services.notifications.email import EmailTransport
from src.services.notifications.fanout import DispatchOutcome, FanoutReport, NotificationFanout
from src.services.notifications.relay import RelayClient

__all__ = [
    "DispatchOutcome",
    "EmailTransport",
    "FanoutReport",
    "NotificationFanout",
    "RelayClient",
]
