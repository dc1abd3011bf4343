"""
Tests for the chat-domain data access helpers.
"""

import pytest
from sqlalchemy import select

from discord_clone import crud, models, schemas


@pytest.fixture
def profile_payload():
    def build(user_id="u1", name="Ada"):
        return schemas.ProfileCreate(user_id=user_id, name=name, email=f"{user_id}@example.com")
    return build


async def make_profile(db, profile_payload, user_id="u1", name="Ada") -> models.Profile:
    db.add(models.User(id=user_id, name=name, email=f"{user_id}@example.com"))
    await db.commit()
    return await crud.create_profile(db, profile_payload(user_id=user_id, name=name))


class TestProfiles:

    @pytest.mark.asyncio
    async def test_create_and_find_profile(self, db, profile_payload):
        profile = await make_profile(db, profile_payload)

        assert profile.id
        assert (await crud.get_profile_by_user_id(db, "u1")).id == profile.id
        assert await crud.get_profile_by_user_id(db, "nobody") is None


class TestServers:

    @pytest.mark.asyncio
    async def test_create_server_adds_admin_and_general_channel(self, db, profile_payload):
        profile = await make_profile(db, profile_payload)

        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=profile.id)

        assert server.invite_code
        assert [(m.profile_id, m.role) for m in server.members] == [(profile.id, models.MemberRole.ADMIN)]
        assert [(c.name, c.type) for c in server.channels] == [("general", models.ChannelType.TEXT)]
        details = schemas.ServerDetails.model_validate(server)
        assert details.profile_id == profile.id

    @pytest.mark.asyncio
    async def test_lookup_by_invite_code_and_regenerate(self, db, profile_payload):
        profile = await make_profile(db, profile_payload)
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=profile.id)
        old_code = server.invite_code

        assert (await crud.get_server_by_invite_code(db, old_code)).id == server.id

        refreshed = await crud.regenerate_invite_code(db, server.id)

        assert refreshed.invite_code != old_code
        assert await crud.get_server_by_invite_code(db, old_code) is None
        assert await crud.regenerate_invite_code(db, "missing") is None

    @pytest.mark.asyncio
    async def test_servers_for_profile_follow_membership(self, db, profile_payload):
        owner = await make_profile(db, profile_payload, user_id="u1")
        guest = await make_profile(db, profile_payload, user_id="u2", name="Grace")
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=owner.id)

        assert await crud.get_servers_for_profile(db, guest.id) == []

        await crud.add_member(db, server.id, guest.id)

        assert [s.id for s in await crud.get_servers_for_profile(db, guest.id)] == [server.id]

    @pytest.mark.asyncio
    async def test_delete_server_removes_members_and_channels(self, db, profile_payload):
        profile = await make_profile(db, profile_payload)
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=profile.id)

        assert (await crud.delete_server(db, server.id)).id == server.id

        assert await crud.get_server(db, server.id) is None
        for model in (models.Member, models.Channel):
            result = await db.execute(select(model))
            assert result.scalars().all() == []


class TestMembers:

    @pytest.mark.asyncio
    async def test_add_member_defaults_to_guest_and_is_idempotent(self, db, profile_payload):
        owner = await make_profile(db, profile_payload, user_id="u1")
        guest = await make_profile(db, profile_payload, user_id="u2", name="Grace")
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=owner.id)

        member = await crud.add_member(db, server.id, guest.id)

        assert member.role is models.MemberRole.GUEST
        assert await crud.add_member(db, server.id, guest.id) is None

    @pytest.mark.asyncio
    async def test_update_role_and_remove(self, db, profile_payload):
        owner = await make_profile(db, profile_payload, user_id="u1")
        guest = await make_profile(db, profile_payload, user_id="u2", name="Grace")
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=owner.id)
        member = await crud.add_member(db, server.id, guest.id)

        promoted = await crud.update_member_role(db, member.id, models.MemberRole.MODERATOR)
        assert promoted.role is models.MemberRole.MODERATOR

        assert (await crud.remove_member(db, server.id, guest.id)).id == member.id
        assert await crud.get_member(db, server.id, guest.id) is None
        assert await crud.remove_member(db, server.id, guest.id) is None


class TestChannelsAndMessages:

    @pytest.mark.asyncio
    async def test_channels_for_server(self, db, profile_payload):
        profile = await make_profile(db, profile_payload)
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=profile.id)

        voice = await crud.create_channel(
            db, schemas.ChannelCreate(name="voice", type=models.ChannelType.AUDIO), server.id, profile.id
        )

        names = {c.name for c in await crud.get_channels_for_server(db, server.id)}
        assert names == {"general", "voice"}

        assert (await crud.delete_channel(db, voice.id)).id == voice.id
        assert {c.name for c in await crud.get_channels_for_server(db, server.id)} == {"general"}

    @pytest.mark.asyncio
    async def test_message_carries_author_profile(self, db, profile_payload):
        profile = await make_profile(db, profile_payload, name="Ada")
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=profile.id)
        channel = server.channels[0]
        member = server.members[0]

        message = await crud.create_message(db, schemas.MessageCreate(content="hello"), channel.id, member.id)

        assert message.member.profile.name == "Ada"
        serialized = schemas.Message.model_validate(message)
        assert serialized.content == "hello"
        assert serialized.deleted is False

        listed = await crud.get_messages_for_channel(db, channel.id)
        assert [(m.content, m.member.profile.name) for m in listed] == [("hello", "Ada")]

    @pytest.mark.asyncio
    async def test_messages_paginate(self, db, profile_payload):
        profile = await make_profile(db, profile_payload)
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=profile.id)
        channel, member = server.channels[0], server.members[0]
        for n in range(5):
            await crud.create_message(db, schemas.MessageCreate(content=f"m{n}"), channel.id, member.id)

        first_page = await crud.get_messages_for_channel(db, channel.id, skip=0, limit=3)
        second_page = await crud.get_messages_for_channel(db, channel.id, skip=3, limit=3)

        assert len(first_page) == 3
        assert len(second_page) == 2
        assert {m.id for m in first_page}.isdisjoint({m.id for m in second_page})

    @pytest.mark.asyncio
    async def test_soft_delete_keeps_the_row(self, db, profile_payload):
        profile = await make_profile(db, profile_payload)
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=profile.id)
        channel, member = server.channels[0], server.members[0]
        message = await crud.create_message(
            db, schemas.MessageCreate(content="oops", file_url="https://cdn.example.com/a.png"), channel.id, member.id
        )

        deleted = await crud.soft_delete_message(db, message.id)

        assert deleted.is_deleted
        assert deleted.file_url is None
        assert deleted.content == crud.DELETED_MESSAGE_CONTENT
        assert len(await crud.get_messages_for_channel(db, channel.id)) == 1
        assert await crud.soft_delete_message(db, "missing") is None


class TestConversations:

    async def two_members(self, db, profile_payload):
        owner = await make_profile(db, profile_payload, user_id="u1", name="Ada")
        guest = await make_profile(db, profile_payload, user_id="u2", name="Grace")
        server = await crud.create_server(db, schemas.ServerCreate(name="Guild"), profile_id=owner.id)
        member_two = await crud.add_member(db, server.id, guest.id)
        return server.members[0], member_two

    @pytest.mark.asyncio
    async def test_conversation_is_found_in_either_order(self, db, profile_payload):
        member_one, member_two = await self.two_members(db, profile_payload)

        created = await crud.get_or_create_conversation(db, member_one.id, member_two.id)
        again = await crud.get_or_create_conversation(db, member_two.id, member_one.id)

        assert again.id == created.id
        assert created.member_one_id == member_one.id
        assert created.member_two_id == member_two.id
        assert schemas.Conversation.model_validate(again) == schemas.Conversation(
            id=created.id, member_one_id=member_one.id, member_two_id=member_two.id
        )

    @pytest.mark.asyncio
    async def test_direct_messages(self, db, profile_payload):
        member_one, member_two = await self.two_members(db, profile_payload)
        conversation = await crud.get_or_create_conversation(db, member_one.id, member_two.id)

        sent = await crud.create_direct_message(
            db, schemas.MessageCreate(content="psst"), conversation.id, member_one.id
        )
        listed = await crud.get_direct_messages_for_conversation(db, conversation.id)

        assert [m.id for m in listed] == [sent.id]
        assert listed[0].member.id == member_one.id
        assert listed[0].conversation.member_two_id == member_two.id
        assert schemas.DirectMessage.model_validate(sent).deleted is False

        deleted = await crud.soft_delete_direct_message(db, sent.id)
        assert deleted.is_deleted
        assert deleted.content == crud.DELETED_MESSAGE_CONTENT
        assert await crud.soft_delete_direct_message(db, "missing") is None
