from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from . import models, schemas, security
from typing import List, Optional

DEFAULT_CHANNEL_NAME = "general"
DELETED_MESSAGE_CONTENT = "This message has been deleted."

# --- Profile CRUD ---
async def create_profile(db: AsyncSession, profile: schemas.ProfileCreate) -> models.Profile:
    db_profile = models.Profile(id=security.create_id(), **profile.model_dump())
    db.add(db_profile)
    await db.commit()
    await db.refresh(db_profile)
    return db_profile

async def get_profile_by_user_id(db: AsyncSession, user_id: str) -> Optional[models.Profile]:
    result = await db.execute(select(models.Profile).filter(models.Profile.user_id == user_id))
    return result.scalars().first()

# --- Server CRUD ---
async def create_server(db: AsyncSession, server: schemas.ServerCreate, profile_id: str) -> models.Server:
    db_server = models.Server(
        id=security.create_id(),
        invite_code=security.create_invite_code(),
        profile_id=profile_id,
        **server.model_dump(),
    )
    db.add(db_server)
    # The creator administers the server and gets a default text channel
    db.add(models.Member(id=security.create_id(), role=models.MemberRole.ADMIN, profile_id=profile_id, server_id=db_server.id))
    db.add(models.Channel(
        id=security.create_id(), name=DEFAULT_CHANNEL_NAME, type=models.ChannelType.TEXT,
        profile_id=profile_id, server_id=db_server.id,
    ))
    await db.commit()
    return await get_server_with_details(db, db_server.id)

async def get_server(db: AsyncSession, server_id: str) -> Optional[models.Server]:
    result = await db.execute(select(models.Server).filter(models.Server.id == server_id))
    return result.scalars().first()

async def get_server_with_details(db: AsyncSession, server_id: str) -> Optional[models.Server]:
    query = (
        select(models.Server)
        .options(
            selectinload(models.Server.members).selectinload(models.Member.profile),
            selectinload(models.Server.channels),
        )
        .filter(models.Server.id == server_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    return result.scalars().first()

async def get_server_by_invite_code(db: AsyncSession, invite_code: str) -> Optional[models.Server]:
    result = await db.execute(select(models.Server).filter(models.Server.invite_code == invite_code))
    return result.scalars().first()

async def get_servers_for_profile(db: AsyncSession, profile_id: str) -> List[models.Server]:
    query = (
        select(models.Server)
        .join(models.Member)
        .filter(models.Member.profile_id == profile_id)
    )
    result = await db.execute(query)
    return result.scalars().all()

async def regenerate_invite_code(db: AsyncSession, server_id: str) -> Optional[models.Server]:
    db_server = await get_server(db, server_id)
    if db_server:
        db_server.invite_code = security.create_invite_code()
        await db.commit()
        await db.refresh(db_server)
    return db_server

async def delete_server(db: AsyncSession, server_id: str) -> Optional[models.Server]:
    db_server = await get_server(db, server_id)
    if db_server:
        await db.delete(db_server)
        await db.commit()
    return db_server

# --- Membership CRUD ---
async def get_member(db: AsyncSession, server_id: str, profile_id: str) -> Optional[models.Member]:
    result = await db.execute(
        select(models.Member).filter_by(server_id=server_id, profile_id=profile_id)
    )
    return result.scalars().first()

async def add_member(
    db: AsyncSession, server_id: str, profile_id: str, role: models.MemberRole = models.MemberRole.GUEST
) -> Optional[models.Member]:
    if await get_member(db, server_id, profile_id):
        return None  # Already a member

    db_member = models.Member(id=security.create_id(), role=role, server_id=server_id, profile_id=profile_id)
    db.add(db_member)
    await db.commit()
    await db.refresh(db_member)
    return db_member

async def update_member_role(db: AsyncSession, member_id: str, role: models.MemberRole) -> Optional[models.Member]:
    result = await db.execute(select(models.Member).filter(models.Member.id == member_id))
    db_member = result.scalars().first()
    if db_member:
        db_member.role = role
        await db.commit()
        await db.refresh(db_member)
    return db_member

async def remove_member(db: AsyncSession, server_id: str, profile_id: str) -> Optional[models.Member]:
    db_member = await get_member(db, server_id, profile_id)
    if db_member:
        await db.delete(db_member)
        await db.commit()
    return db_member

# --- Channel CRUD ---
async def create_channel(
    db: AsyncSession, channel: schemas.ChannelCreate, server_id: str, profile_id: str
) -> models.Channel:
    db_channel = models.Channel(id=security.create_id(), server_id=server_id, profile_id=profile_id, **channel.model_dump())
    db.add(db_channel)
    await db.commit()
    await db.refresh(db_channel)
    return db_channel

async def get_channels_for_server(db: AsyncSession, server_id: str) -> List[models.Channel]:
    query = (
        select(models.Channel)
        .filter(models.Channel.server_id == server_id)
        .order_by(models.Channel.created_at, models.Channel.name)
    )
    result = await db.execute(query)
    return result.scalars().all()

async def delete_channel(db: AsyncSession, channel_id: str) -> Optional[models.Channel]:
    result = await db.execute(select(models.Channel).filter(models.Channel.id == channel_id))
    db_channel = result.scalars().first()
    if db_channel:
        await db.delete(db_channel)
        await db.commit()
    return db_channel

# --- Message CRUD ---
async def create_message(
    db: AsyncSession, message: schemas.MessageCreate, channel_id: str, member_id: str
) -> models.Message:
    db_message = models.Message(id=security.create_id(), channel_id=channel_id, member_id=member_id, **message.model_dump())
    db.add(db_message)
    await db.commit()
    # Load the author's profile along with the message
    query = (
        select(models.Message)
        .options(selectinload(models.Message.member).selectinload(models.Member.profile))
        .filter(models.Message.id == db_message.id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    return result.scalars().first()

async def get_messages_for_channel(
    db: AsyncSession, channel_id: str, skip: int = 0, limit: int = 50
) -> List[models.Message]:
    query = (
        select(models.Message)
        .filter(models.Message.channel_id == channel_id)
        .order_by(models.Message.created_at.desc(), models.Message.id)
        .offset(skip)
        .limit(limit)
        .options(selectinload(models.Message.member).selectinload(models.Member.profile))
    )
    result = await db.execute(query)
    return result.scalars().all()

async def soft_delete_message(db: AsyncSession, message_id: str) -> Optional[models.Message]:
    result = await db.execute(select(models.Message).filter(models.Message.id == message_id))
    db_message = result.scalars().first()
    if db_message:
        db_message.content = DELETED_MESSAGE_CONTENT
        db_message.file_url = None
        db_message.deleted = 1
        await db.commit()
        await db.refresh(db_message)
    return db_message

# --- Conversation CRUD ---
async def get_conversation(db: AsyncSession, member_one_id: str, member_two_id: str) -> Optional[models.Conversation]:
    # A conversation between two members is found regardless of who started it
    query = select(models.Conversation).filter(
        or_(
            and_(models.Conversation.member_one_id == member_one_id, models.Conversation.member_two_id == member_two_id),
            and_(models.Conversation.member_one_id == member_two_id, models.Conversation.member_two_id == member_one_id),
        )
    )
    result = await db.execute(query)
    return result.scalars().first()

async def get_or_create_conversation(db: AsyncSession, member_one_id: str, member_two_id: str) -> models.Conversation:
    db_conversation = await get_conversation(db, member_one_id, member_two_id)
    if db_conversation:
        return db_conversation

    db_conversation = models.Conversation(
        id=security.create_id(), member_one_id=member_one_id, member_two_id=member_two_id
    )
    db.add(db_conversation)
    await db.commit()
    await db.refresh(db_conversation)
    return db_conversation

async def create_direct_message(
    db: AsyncSession, message: schemas.MessageCreate, conversation_id: str, member_id: str
) -> models.DirectMessage:
    db_message = models.DirectMessage(
        id=security.create_id(), conversation_id=conversation_id, member_id=member_id, **message.model_dump()
    )
    db.add(db_message)
    await db.commit()
    await db.refresh(db_message)
    return db_message

async def get_direct_messages_for_conversation(
    db: AsyncSession, conversation_id: str, skip: int = 0, limit: int = 50
) -> List[models.DirectMessage]:
    query = (
        select(models.DirectMessage)
        .filter(models.DirectMessage.conversation_id == conversation_id)
        .order_by(models.DirectMessage.created_at.desc(), models.DirectMessage.id)
        .offset(skip)
        .limit(limit)
        .options(
            selectinload(models.DirectMessage.member).selectinload(models.Member.profile),
            selectinload(models.DirectMessage.conversation),
        )
    )
    result = await db.execute(query)
    return result.scalars().all()

async def soft_delete_direct_message(db: AsyncSession, message_id: str) -> Optional[models.DirectMessage]:
    result = await db.execute(select(models.DirectMessage).filter(models.DirectMessage.id == message_id))
    db_message = result.scalars().first()
    if db_message:
        db_message.content = DELETED_MESSAGE_CONTENT
        db_message.file_url = None
        db_message.deleted = 1
        await db.commit()
        await db.refresh(db_message)
    return db_message
