"""Wire models for the chat relay webhook.

Two delivery shapes reach the same endpoint:

- the canonical relay shape, one message per delivery::

    {"event": "message.received", "timestamp": "...",
     "data": {"id", "channel", "from", "content", "type", "externalId"}}

- the legacy provider shape, batched::

    {"object": "whatsapp_business_account",
     "entry": [{"changes": [{"value": {"messages": [
         {"id", "from", "timestamp", "type", "text": {"body"}}]}}]}]}

Fields are optional on purpose: a delivery missing ``from`` or ``content``
is skipped by the normalizer, not rejected by validation.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CanonicalData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    channel: str | None = None
    from_: str | None = Field(default=None, alias="from")
    content: str | None = None
    type: str | None = None
    external_id: str | None = Field(default=None, alias="externalId")


class CanonicalPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str | None = None
    timestamp: str | int | None = None
    data: CanonicalData | None = None


class LegacyText(BaseModel):
    body: str | None = None


class LegacyMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    from_: str | None = Field(default=None, alias="from")
    timestamp: str | int | None = None
    type: str | None = None
    text: LegacyText | None = None


class LegacyValue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: list[LegacyMessage] = Field(default_factory=list)


class LegacyChange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: LegacyValue | None = None
    field: str | None = None


class LegacyEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    changes: list[LegacyChange] = Field(default_factory=list)


class LegacyPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    object_: str | None = Field(default=None, alias="object")
    entry: list[LegacyEntry] = Field(default_factory=list)


WebhookPayload = CanonicalPayload | LegacyPayload


class DeliveryStatus(str, Enum):
    """Status reported back to the relay. The HTTP code is always 200."""

    OK = "ok"
    IGNORED = "ignored"
    ERROR = "error"


class DeliveryResult(BaseModel):
    """Body of the POST webhook response."""

    model_config = ConfigDict(populate_by_name=True)

    status: DeliveryStatus = DeliveryStatus.OK
    processed: int = 0
    conversation_id: str | None = Field(default=None, alias="conversationId")

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
