"""In-app notification model."""

from datetime import datetime

from pydantic import BaseModel, Field


class Notification(BaseModel):
    """Notification shown in the agent's in-app feed."""

    id: str
    recipient_user_id: str
    type: str = "whatsapp"
    title: str
    body: str
    link: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    read_at: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
