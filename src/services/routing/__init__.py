"""Routing - phone canonicalization and conversation ownership."""

from src.services.routing.phone import CountryCodePolicy, PhoneNormalizer
from src.services.routing.resolver import ConversationResolver, extract_property_id

__all__ = ["ConversationResolver", "CountryCodePolicy", "PhoneNormalizer", "extract_property_id"]
