import datetime
import enum

from sqlalchemy import (
    BigInteger, Column, DateTime, Enum, ForeignKey, Index, Integer, MetaData,
    PrimaryKeyConstraint, String, Text, TypeDecorator, func
)
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import declarative_base, relationship

# Several projects share one database instance; every table carries this tag.
TABLE_PREFIX = "discord-clone_"

def table_name(name: str) -> str:
    return f"{TABLE_PREFIX}{name}"

Base = declarative_base(metadata=MetaData())

class UTCDateTime(TypeDecorator):
    """Timestamps stored as naive UTC and read back as aware UTC.

    MySQL TIMESTAMP/DATETIME and SQLite keep no offset, so aware values are
    converted to UTC before they are written.
    """
    impl = DateTime
    cache_ok = True

    def __init__(self, fsp=None):
        super().__init__()
        self.fsp = fsp

    def load_dialect_impl(self, dialect):
        if self.fsp is not None and dialect.name in ("mysql", "mariadb"):
            return dialect.type_descriptor(mysql.TIMESTAMP(fsp=self.fsp))
        return dialect.type_descriptor(DateTime())

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value


class MemberRole(str, enum.Enum):
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    GUEST = "GUEST"

class ChannelType(str, enum.Enum):
    TEXT = "TEXT"
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"


def _user_fk():
    return ForeignKey(f"{table_name('user')}.id", ondelete="CASCADE")

def _created_at():
    return Column("createdAt", UTCDateTime, server_default=func.now(), nullable=False)

def _updated_at():
    return Column("updatedAt", UTCDateTime, onupdate=func.now())


# --- Auth tables ---
class User(Base):
    __tablename__ = table_name("user")
    id = Column(String(255), primary_key=True)
    name = Column(String(255))
    email = Column(String(255), nullable=False)
    email_verified = Column("emailVerified", UTCDateTime(fsp=3), nullable=True)
    image = Column(String(255))

    accounts = relationship("Account", back_populates="user", passive_deletes=True)
    sessions = relationship("Session", back_populates="user", passive_deletes=True)
    profile = relationship("Profile", back_populates="user", uselist=False, passive_deletes=True)
    posts = relationship("Post", back_populates="created_by", passive_deletes=True)

class Account(Base):
    __tablename__ = table_name("account")
    __table_args__ = (
        PrimaryKeyConstraint("provider", "providerAccountId"),
        Index("account_userId_idx", "userId"),
    )
    user_id = Column("userId", String(255), _user_fk(), nullable=False)
    type = Column(String(255), nullable=False)
    provider = Column(String(255), nullable=False)
    provider_account_id = Column("providerAccountId", String(255), nullable=False)
    refresh_token = Column(Text)
    access_token = Column(Text)
    expires_at = Column(Integer)
    token_type = Column(String(255))
    scope = Column(String(255))
    id_token = Column(Text)
    session_state = Column(String(255))

    user = relationship("User", back_populates="accounts")

class Session(Base):
    __tablename__ = table_name("session")
    __table_args__ = (Index("session_userId_idx", "userId"),)
    session_token = Column("sessionToken", String(255), primary_key=True)
    user_id = Column("userId", String(255), _user_fk(), nullable=False)
    expires = Column(UTCDateTime, nullable=False)

    user = relationship("User", back_populates="sessions")

class VerificationToken(Base):
    __tablename__ = table_name("verificationToken")
    __table_args__ = (PrimaryKeyConstraint("identifier", "token"),)
    identifier = Column(String(255), nullable=False)
    token = Column(String(255), nullable=False)
    expires = Column(UTCDateTime, nullable=False)

class Post(Base):
    __tablename__ = table_name("post")
    __table_args__ = (
        Index("createdById_idx", "createdById"),
        Index("name_idx", "name"),
    )
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    name = Column(String(256))
    created_by_id = Column("createdById", String(255), _user_fk(), nullable=False)
    created_at = Column("created_at", UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = _updated_at()

    created_by = relationship("User", back_populates="posts")


# --- Chat tables ---
class Profile(Base):
    __tablename__ = table_name("profile")
    id = Column(String(255), primary_key=True)
    user_id = Column("userId", String(255), _user_fk(), nullable=False, unique=True)
    name = Column(String(255))
    image_url = Column("imageUrl", Text)
    email = Column(Text)
    created_at = _created_at()
    updated_at = _updated_at()

    user = relationship("User", back_populates="profile")
    servers = relationship("Server", back_populates="profile", passive_deletes=True)
    members = relationship("Member", back_populates="profile", passive_deletes=True)
    channels = relationship("Channel", back_populates="profile", passive_deletes=True)

class Server(Base):
    __tablename__ = table_name("server")
    id = Column(String(255), primary_key=True)
    name = Column(String(255))
    image_url = Column("imageUrl", Text)
    invite_code = Column("inviteCode", String(255), nullable=False, unique=True)
    profile_id = Column(
        "profileId", String(255), ForeignKey(f"{table_name('profile')}.id", ondelete="CASCADE"), nullable=False
    )
    created_at = _created_at()
    updated_at = _updated_at()

    profile = relationship("Profile", back_populates="servers")
    members = relationship("Member", back_populates="server", cascade="all, delete-orphan", passive_deletes=True)
    channels = relationship("Channel", back_populates="server", cascade="all, delete-orphan", passive_deletes=True)

class Member(Base):
    __tablename__ = table_name("member")
    id = Column(String(255), primary_key=True)
    role = Column("MemberRole", Enum(MemberRole, name="MemberRole"), default=MemberRole.GUEST)
    profile_id = Column(
        "profileId", String(255), ForeignKey(f"{table_name('profile')}.id", ondelete="CASCADE"), nullable=False
    )
    server_id = Column(
        "serverId", String(255), ForeignKey(f"{table_name('server')}.id", ondelete="CASCADE"), nullable=False
    )
    created_at = _created_at()
    updated_at = _updated_at()

    profile = relationship("Profile", back_populates="members")
    server = relationship("Server", back_populates="members")
    messages = relationship("Message", back_populates="member", passive_deletes=True)
    direct_messages = relationship("DirectMessage", back_populates="member", passive_deletes=True)
    conversations_initiated = relationship(
        "Conversation", back_populates="member_one",
        foreign_keys="Conversation.member_one_id", passive_deletes=True,
    )
    conversations_received = relationship(
        "Conversation", back_populates="member_two",
        foreign_keys="Conversation.member_two_id", passive_deletes=True,
    )

class Channel(Base):
    __tablename__ = table_name("channel")
    id = Column(String(255), primary_key=True)
    name = Column(String(255))
    type = Column("ChannelType", Enum(ChannelType, name="ChannelType"), default=ChannelType.TEXT)
    profile_id = Column(
        "profileId", String(255), ForeignKey(f"{table_name('profile')}.id", ondelete="CASCADE"), nullable=False
    )
    server_id = Column(
        "serverId", String(255), ForeignKey(f"{table_name('server')}.id", ondelete="CASCADE"), nullable=False
    )
    created_at = _created_at()
    updated_at = _updated_at()

    profile = relationship("Profile", back_populates="channels")
    server = relationship("Server", back_populates="channels")
    messages = relationship("Message", back_populates="channel", cascade="all, delete-orphan", passive_deletes=True)

class Message(Base):
    __tablename__ = table_name("message")
    id = Column(String(255), primary_key=True)
    content = Column(Text)
    file_url = Column("fileUrl", Text)
    member_id = Column(
        "memberId", String(255), ForeignKey(f"{table_name('member')}.id", ondelete="CASCADE"), nullable=False
    )
    channel_id = Column(
        "channelId", String(255), ForeignKey(f"{table_name('channel')}.id", ondelete="CASCADE"), nullable=False
    )
    deleted = Column(BigInteger, default=0)
    created_at = _created_at()
    updated_at = _updated_at()

    member = relationship("Member", back_populates="messages")
    channel = relationship("Channel", back_populates="messages")

    @property
    def is_deleted(self) -> bool:
        return bool(self.deleted)

class Conversation(Base):
    __tablename__ = table_name("conversation")
    id = Column(String(255), primary_key=True)
    member_one_id = Column(
        "memberOneId", String(255), ForeignKey(f"{table_name('member')}.id", ondelete="CASCADE"), nullable=False
    )
    member_two_id = Column(
        "memberTwoId", String(255), ForeignKey(f"{table_name('member')}.id", ondelete="CASCADE"), nullable=False
    )

    member_one = relationship("Member", back_populates="conversations_initiated", foreign_keys=[member_one_id])
    member_two = relationship("Member", back_populates="conversations_received", foreign_keys=[member_two_id])
    direct_messages = relationship(
        "DirectMessage", back_populates="conversation", cascade="all, delete-orphan", passive_deletes=True
    )

class DirectMessage(Base):
    __tablename__ = table_name("directMessage")
    id = Column(String(255), primary_key=True)
    content = Column(Text)
    file_url = Column("fileUrl", Text)
    member_id = Column(
        "memberId", String(255), ForeignKey(f"{table_name('member')}.id", ondelete="CASCADE"), nullable=False
    )
    conversation_id = Column(
        "conversationId", String(255), ForeignKey(f"{table_name('conversation')}.id", ondelete="CASCADE"),
        nullable=False,
    )
    deleted = Column(BigInteger, default=0)
    created_at = _created_at()
    updated_at = _updated_at()

    member = relationship("Member", back_populates="direct_messages")
    conversation = relationship("Conversation", back_populates="direct_messages")

    @property
    def is_deleted(self) -> bool:
        return bool(self.deleted)
