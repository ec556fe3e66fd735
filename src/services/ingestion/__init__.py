"""Ingestion - webhook gateway and the inbound message pipeline."""

from src.services.ingestion.dedup import DedupGuard
from src.services.ingestion.gateway import IngestOutcome, IngestResult, WebhookGateway
from src.services.ingestion.normalizer import normalize, parse_payload
from src.services.ingestion.store import MessageStore

__all__ = [
    "DedupGuard",
    "IngestOutcome",
    "IngestResult",
    "MessageStore",
    "WebhookGateway",
    "normalize",
    "parse_payload",
]
