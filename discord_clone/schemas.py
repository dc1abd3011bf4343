from pydantic import AfterValidator, BaseModel, ConfigDict
from typing import Annotated, List, Optional
import datetime

from discord_clone.models import ChannelType, MemberRole


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    # Naive values are taken to be UTC already
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)

UTCDatetime = Annotated[datetime.datetime, AfterValidator(_as_utc)]

# --- Adapter records ---
# Field names are snake_case; the tables keep the camelCase column names.

# User Schemas
class UserBase(BaseModel):
    name: Optional[str] = None
    email: str
    email_verified: Optional[UTCDatetime] = None
    image: Optional[str] = None

class UserCreate(UserBase):
    pass

class User(UserBase):
    id: str
    model_config = ConfigDict(from_attributes=True)

class UserUpdate(BaseModel):
    """Partial update; only fields that were explicitly set are written."""
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    email_verified: Optional[UTCDatetime] = None
    image: Optional[str] = None

# Session Schemas
class SessionBase(BaseModel):
    session_token: str
    user_id: str
    expires: UTCDatetime

class SessionCreate(SessionBase):
    pass

class Session(SessionBase):
    model_config = ConfigDict(from_attributes=True)

class SessionUpdate(BaseModel):
    session_token: str
    user_id: Optional[str] = None
    expires: Optional[UTCDatetime] = None

class SessionAndUser(BaseModel):
    session: Session
    user: User

# Account Schemas
class AccountKey(BaseModel):
    provider: str
    provider_account_id: str

class AccountCreate(AccountKey):
    user_id: str
    type: str
    refresh_token: Optional[str] = None
    access_token: Optional[str] = None
    expires_at: Optional[int] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None
    session_state: Optional[str] = None

# Verification Token Schemas
class VerificationTokenKey(BaseModel):
    identifier: str
    token: str

class VerificationToken(VerificationTokenKey):
    expires: UTCDatetime
    model_config = ConfigDict(from_attributes=True)

# --- Chat records ---

class ProfileCreate(BaseModel):
    user_id: str
    name: Optional[str] = None
    image_url: Optional[str] = None
    email: Optional[str] = None

class Profile(ProfileCreate):
    id: str
    model_config = ConfigDict(from_attributes=True)

class ServerCreate(BaseModel):
    name: str
    image_url: Optional[str] = None

class Server(ServerCreate):
    id: str
    invite_code: str
    profile_id: str
    model_config = ConfigDict(from_attributes=True)

class Member(BaseModel):
    id: str
    role: MemberRole
    profile_id: str
    server_id: str
    model_config = ConfigDict(from_attributes=True)

class MemberWithProfile(Member):
    profile: Profile

class ChannelCreate(BaseModel):
    name: str
    type: ChannelType = ChannelType.TEXT

class Channel(ChannelCreate):
    id: str
    profile_id: str
    server_id: str
    model_config = ConfigDict(from_attributes=True)

class ServerDetails(Server):
    members: List[Member]
    channels: List[Channel]

class MessageCreate(BaseModel):
    content: str
    file_url: Optional[str] = None

class Message(BaseModel):
    id: str
    content: Optional[str] = None
    file_url: Optional[str] = None
    member_id: str
    channel_id: str
    deleted: bool = False
    created_at: UTCDatetime
    member: MemberWithProfile
    model_config = ConfigDict(from_attributes=True)

class Conversation(BaseModel):
    id: str
    member_one_id: str
    member_two_id: str
    model_config = ConfigDict(from_attributes=True)

class DirectMessage(BaseModel):
    id: str
    content: Optional[str] = None
    file_url: Optional[str] = None
    member_id: str
    conversation_id: str
    deleted: bool = False
    created_at: UTCDatetime
    model_config = ConfigDict(from_attributes=True)
