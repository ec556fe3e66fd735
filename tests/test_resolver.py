"""Tests for conversation resolution and agent ownership."""

import pytest

from conftest import (
    AGENT_ID,
    AGENT_PROPERTY_ID,
    CONTACT_ID,
    LEAD_AGENT_ID,
    OWNER_ID,
    OWNER_PROPERTY_ID,
    SENDER_KEY,
)
from src.models import Conversation, ConversationStatus, Lead
from src.services.routing.resolver import extract_property_id


class TestExtractPropertyId:
    """Tests for property reference extraction."""

    def test_link_in_message(self):
        assert extract_property_id("See https://x/properties/456") == 456

    def test_relative_path_and_case(self):
        assert extract_property_id("interested in /Properties/12 please") == 12

    def test_no_reference(self):
        assert extract_property_id("Is the flat still available?") is None
        assert extract_property_id("properties/456 without leading slash") is None
        assert extract_property_id(None) is None


class TestNewConversation:
    """Resolution for a sender with no active conversation."""

    @pytest.mark.asyncio
    async def test_property_reference_assigns_listing_agent(self, resolver, directory):
        resolution = await resolver.resolve(
            SENDER_KEY, f"Hi, about https://homes.test/properties/{AGENT_PROPERTY_ID}"
        )

        assert resolution.created
        assert resolution.agent_id == AGENT_ID
        assert resolution.property_id == AGENT_PROPERTY_ID

        stored = await directory.get_conversation(resolution.conversation_id)
        assert stored.phone_number == SENDER_KEY
        assert stored.status == ConversationStatus.ACTIVE
        assert stored.agent_id == AGENT_ID

    @pytest.mark.asyncio
    async def test_property_agent_wins_over_lead_agent(self, resolver, directory):
        """The sender has a lead with another agent; the property reference is tried first."""
        resolution = await resolver.resolve(SENDER_KEY, f"/properties/{AGENT_PROPERTY_ID}")
        assert resolution.agent_id == AGENT_ID
        assert resolution.agent_id != LEAD_AGENT_ID

    @pytest.mark.asyncio
    async def test_private_listing_resolves_to_owner(self, resolver, directory):
        resolution = await resolver.resolve(SENDER_KEY, f"/properties/{OWNER_PROPERTY_ID}")
        assert resolution.agent_id == OWNER_ID
        assert resolution.property_id == OWNER_PROPERTY_ID

    @pytest.mark.asyncio
    async def test_dangling_agent_profile_falls_back_to_owner(self, resolver, directory):
        from src.models import Property

        await directory.save_property(
            Property(id=999, title="Orphan", agent_profile_id="gone", owner_user_id=OWNER_ID)
        )
        resolution = await resolver.resolve("0829990000", "/properties/999")
        assert resolution.agent_id == OWNER_ID

    @pytest.mark.asyncio
    async def test_no_reference_falls_back_to_latest_lead(self, resolver, directory):
        """The newest lead is stored with a '+' prefix and still matches."""
        resolution = await resolver.resolve(SENDER_KEY, "Hello")
        assert resolution.agent_id == LEAD_AGENT_ID
        assert resolution.property_id is None

    @pytest.mark.asyncio
    async def test_unknown_property_falls_back_to_lead(self, resolver, directory):
        resolution = await resolver.resolve(SENDER_KEY, "/properties/123456")
        assert resolution.agent_id == LEAD_AGENT_ID
        assert resolution.property_id is None

    @pytest.mark.asyncio
    async def test_unresolvable_sender_is_created_unassigned(self, resolver, directory):
        resolution = await resolver.resolve("27820001111", "Hello")

        assert resolution.created
        assert resolution.agent_id is None
        conversation = await directory.get_conversation(resolution.conversation_id)
        assert conversation.agent_id is None
        assert conversation.user_id is None

    @pytest.mark.asyncio
    async def test_user_attribution_matches_plus_form(self, resolver, directory):
        resolution = await resolver.resolve(SENDER_KEY, "Hello")
        conversation = await directory.get_conversation(resolution.conversation_id)
        assert conversation.user_id == CONTACT_ID


class TestExistingConversation:
    """Resolution and backfill for a sender with an active conversation."""

    @pytest.mark.asyncio
    async def test_reuses_active_conversation(self, resolver, storage):
        first = await resolver.resolve("27820001111", "Hello")
        second = await resolver.resolve("0820001111", "Hello again")

        assert not second.created
        assert second.conversation_id == first.conversation_id

    @pytest.mark.asyncio
    async def test_archived_conversation_is_not_reused(self, resolver, storage):
        await storage.save_conversation(
            Conversation(id="old", phone_number="27820001111", status=ConversationStatus.ARCHIVED)
        )
        resolution = await resolver.resolve("27820001111", "Hello")
        assert resolution.created
        assert resolution.conversation_id != "old"

    @pytest.mark.asyncio
    async def test_unassigned_conversation_backfilled_from_property(self, resolver, directory):
        await directory.save_conversation(Conversation(id="conv-1", phone_number="27820001111"))

        resolution = await resolver.resolve(
            "27820001111", f"This one: https://x/properties/{AGENT_PROPERTY_ID}"
        )

        assert resolution.conversation_id == "conv-1"
        assert resolution.agent_id == AGENT_ID
        assert resolution.property_id == AGENT_PROPERTY_ID
        stored = await directory.get_conversation("conv-1")
        assert stored.agent_id == AGENT_ID
        assert stored.property_id == AGENT_PROPERTY_ID

    @pytest.mark.asyncio
    async def test_assigned_conversation_ignores_later_reference(self, resolver, directory):
        await directory.save_conversation(
            Conversation(
                id="conv-1",
                phone_number=SENDER_KEY,
                agent_id=AGENT_ID,
                property_id=AGENT_PROPERTY_ID,
            )
        )

        resolution = await resolver.resolve(SENDER_KEY, f"/properties/{OWNER_PROPERTY_ID}")

        assert resolution.agent_id == AGENT_ID
        assert resolution.property_id == AGENT_PROPERTY_ID
        stored = await directory.get_conversation("conv-1")
        assert stored.agent_id == AGENT_ID
        assert stored.property_id == AGENT_PROPERTY_ID

    @pytest.mark.asyncio
    async def test_backfill_keeps_existing_property(self, resolver, directory):
        await directory.save_conversation(
            Conversation(id="conv-1", phone_number="27820001111", property_id=OWNER_PROPERTY_ID)
        )

        resolution = await resolver.resolve("27820001111", f"/properties/{AGENT_PROPERTY_ID}")

        assert resolution.agent_id == AGENT_ID
        assert resolution.property_id == OWNER_PROPERTY_ID

    @pytest.mark.asyncio
    async def test_unassigned_conversation_backfilled_from_lead(self, resolver, directory):
        await directory.save_conversation(Conversation(id="conv-1", phone_number="27820001111"))
        await directory.save_lead(Lead(id="lead-x", contact_phone="27820001111", agent_id=AGENT_ID))

        resolution = await resolver.resolve("27820001111", "Any news?")

        assert resolution.agent_id == AGENT_ID
        assert resolution.property_id is None

    @pytest.mark.asyncio
    async def test_unresolvable_message_leaves_conversation_unassigned(self, resolver, directory):
        await directory.save_conversation(Conversation(id="conv-1", phone_number="27820001111"))

        resolution = await resolver.resolve("27820001111", "/properties/123456")

        assert resolution.agent_id is None
        assert (await directory.get_conversation("conv-1")).agent_id is None

    @pytest.mark.asyncio
    async def test_national_format_directory_phone_is_not_attributed(self, resolver, storage):
        """Directory phones are matched only in the bare and '+' international forms."""
        from src.models import User

        await storage.save_user(User(id="u-national", name="Local", phone="0820001111"))

        resolution = await resolver.resolve("27820001111", "Hello")

        conversation = await storage.get_conversation(resolution.conversation_id)
        assert conversation.user_id is None

    @pytest.mark.asyncio
    async def test_conversation_created_concurrently_is_joined(self, resolver, directory):
        """A conversation that appears between lookup and create is reused, then backfilled."""
        winner = Conversation(id="winner", phone_number=SENDER_KEY)
        original = directory.find_active_conversation
        calls = 0

        async def find_active(phone_number):
            nonlocal calls
            calls += 1
            if calls == 1:
                # Another message created it right after this lookup
                await directory.save_conversation(winner)
                return None
            return await original(phone_number)

        directory.find_active_conversation = find_active

        resolution = await resolver.resolve(SENDER_KEY, f"/properties/{AGENT_PROPERTY_ID}")

        assert resolution.conversation_id == "winner"
        assert not resolution.created
        assert resolution.agent_id == AGENT_ID
        assert len(await directory.list_conversations()) == 1
