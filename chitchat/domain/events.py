# chitchat/domain/events.py
from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel

from chitchat.domain.enums import EventKind, MessageType


class Event(BaseModel):
    kind: ClassVar[EventKind]

    room_id: int


class UserInfo(BaseModel):
    id: int
    username: str


class MessagePayload(BaseModel):
    id: int
    room_id: int
    sender_id: int
    content: str
    message_type: MessageType
    sent_at: datetime
    edited_at: datetime | None = None
    is_active: bool
    sender: UserInfo | None = None


class MessageEvent(Event):
    message: MessagePayload


class MessageSent(MessageEvent):
    kind = EventKind.MESSAGE_SENT


class MessageEdited(MessageEvent):
    kind = EventKind.MESSAGE_EDITED


class MessageDeleted(MessageEvent):
    kind = EventKind.MESSAGE_DELETED


class RoomEvent(Event):
    user_id: int
    username: str
    text: str


class UserJoined(RoomEvent):
    kind = EventKind.USER_JOINED


class UserLeft(RoomEvent):
    kind = EventKind.USER_LEFT


class Typing(RoomEvent):
    kind = EventKind.TYPING

    is_typing: bool = True
