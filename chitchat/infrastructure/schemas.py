# chitchat/infrastructure/schemas.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from chitchat.domain.enums import (
    ContactStatus,
    FriendshipStatus,
    MessageType,
    ParticipantRole,
)


class UserBase(BaseModel):
    username: str
    email: EmailStr


class UserBasic(BaseModel):
    id: int
    username: str
    display_name: str | None = None
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)
    display_name: str | None = None


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8)
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None


class User(UserBase):
    id: int
    display_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class RoomCreate(BaseModel):
    name: str
    is_group: bool = True
    description: str | None = None
    participant_ids: list[int] = Field(default_factory=list)


class Room(BaseModel):
    id: int
    name: str
    is_group: bool
    creator_id: int
    description: str | None = None
    is_active: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class RoomSummary(Room):
    participant_count: int = 0


class ParticipantInfo(BaseModel):
    user: UserBasic
    role: ParticipantRole


class RoomDetails(Room):
    participant_count: int = 0
    participants: list[ParticipantInfo] = Field(default_factory=list)


class ParticipantAdd(BaseModel):
    user_id: int


class MessageCreate(BaseModel):
    content: str
    message_type: MessageType = MessageType.TEXT


class MessageUpdate(BaseModel):
    content: str


class Attachment(BaseModel):
    id: int
    message_id: int
    file_name: str
    file_type: str | None = None
    file_size: int
    uploaded_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class Message(BaseModel):
    id: int
    room_id: int
    sender_id: int
    content: str
    message_type: MessageType
    sent_at: datetime
    edited_at: datetime | None = None
    is_active: bool
    sender: UserBasic | None = None
    room_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class FriendRequestCreate(BaseModel):
    email: EmailStr


class Contact(BaseModel):
    id: int
    user_id: int
    friend_id: int
    status: ContactStatus
    is_active: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class FriendRequest(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    status: ContactStatus
    created_at: datetime | None = None
    sender: UserBasic


class FriendshipStatusResponse(BaseModel):
    user_id: int
    other_id: int
    status: FriendshipStatus


class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    expires_at: datetime
    user_id: int


class BotGenerateRequest(BaseModel):
    provider: str
    prompt: str
    model: str | None = None
    api_key: str
    context: str | None = None


class BotGenerateResponse(BaseModel):
    provider: str
    model: str
    text: str


class BotTestRequest(BaseModel):
    provider: str
    api_key: str
    model: str | None = None


class BotTestResponse(BaseModel):
    provider: str
    ok: bool


class ProviderInfo(BaseModel):
    name: str
    supported_models: list[str]
