"""Directory records owned by the marketplace and read during routing."""

from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    """Platform account (contacts, agents and private owners alike)."""

    id: str
    name: str = ""
    email: str | None = None
    phone: str | None = None


class AgentProfile(BaseModel):
    """Agent profile, linked to the user account that owns it."""

    id: str
    user_id: str


class Property(BaseModel):
    """Listing, either managed by an agent profile or owned directly by a user."""

    id: int
    title: str = ""
    agent_profile_id: str | None = None
    owner_user_id: str | None = None


class Lead(BaseModel):
    """CRM lead with a contact phone and an assigned agent user."""

    id: str
    contact_phone: str
    agent_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
