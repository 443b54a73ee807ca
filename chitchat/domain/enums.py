# chitchat/domain/enums.py
from enum import Enum


class ParticipantRole(str, Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class MessageType(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    FILE = "FILE"
    SYSTEM = "SYSTEM"


class ContactStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class FriendshipStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    RECEIVED = "received"
    FRIENDS = "friends"


class EventKind(str, Enum):
    MESSAGE_SENT = "MESSAGE_SENT"
    MESSAGE_EDITED = "MESSAGE_EDITED"
    MESSAGE_DELETED = "MESSAGE_DELETED"
    USER_JOINED = "USER_JOINED"
    USER_LEFT = "USER_LEFT"
    TYPING = "TYPING"
