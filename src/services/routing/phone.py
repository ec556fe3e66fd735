"""Phone number canonicalization for the conversation directory."""

import re
from dataclasses import dataclass

from src.core.config import Settings, settings

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class CountryCodePolicy:
    """How a national-format number maps onto its international form.

    A number of exactly ``national_number_length`` digits starting with
    ``national_prefix`` has the prefix replaced by ``calling_code``.
    """

    calling_code: str = "27"
    national_prefix: str = "0"
    national_number_length: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> "CountryCodePolicy":
        return cls(
            calling_code=settings.country_calling_code,
            national_prefix=settings.national_prefix,
            national_number_length=settings.national_number_length,
        )

    def apply(self, digits: str) -> str:
        if len(digits) == self.national_number_length and digits.startswith(self.national_prefix):
            return self.calling_code + digits[len(self.national_prefix):]
        return digits


class PhoneNormalizer:
    """Turns any user-entered or provider-delivered number into the directory key."""

    def __init__(self, policy: CountryCodePolicy | None = None) -> None:
        self.policy = policy or CountryCodePolicy.from_settings(settings)

    def normalize(self, phone: str | None) -> str:
        """Strip non-digits and apply the country policy.

        Idempotent: normalizing a normalized number returns it unchanged.
        """
        if not phone:
            return ""
        digits = _NON_DIGITS.sub("", phone)
        return self.policy.apply(digits)

    def lookup_forms(self, phone: str) -> list[str]:
        """Forms to match against stored user and lead phones.

        Stored phones are not normalized at every write site, so records may
        hold either the bare key or a ``+``-prefixed variant. Both are queried
        until writes are normalized everywhere.

        Known gap: a record stored in national format (``0821234567``) or with
        spaces matches neither form and is never found.
        """
        normalized = self.normalize(phone)
        return [normalized, f"+{normalized}"]

    def same_number(self, first: str | None, second: str | None) -> bool:
        a, b = self.normalize(first), self.normalize(second)
        return bool(a) and a == b


# Singleton instance
_phone_normalizer: PhoneNormalizer | None = None


def get_phone_normalizer() -> PhoneNormalizer:
    """Get or create the phone normalizer singleton."""
    global _phone_normalizer
    if _phone_normalizer is None:
        _phone_normalizer = PhoneNormalizer()
    return _phone_normalizer
