# chitchat/infrastructure/event_handlers.py
import json
from typing import Any

from chitchat.domain.events import (
    Event,
    MessageDeleted,
    MessageEdited,
    MessageEvent,
    MessageSent,
    RoomEvent,
    Typing,
    UserJoined,
    UserLeft,
)


def room_channel(room_id: int) -> str:
    return f"room:{room_id}"


class EventHandlers:
    def __init__(self, redis_client):
        self.redis_client = redis_client

    async def publish_event(self, event: Event, payload: dict[str, Any]):
        envelope = {
            "type": event.kind.value,
            "room_id": event.room_id,
            "payload": payload,
        }
        await self.redis_client.publish(
            room_channel(event.room_id), json.dumps(envelope, default=str)
        )

    async def publish_message_event(self, event: MessageEvent):
        await self.publish_event(event, event.message.model_dump(mode="json"))

    async def publish_room_event(self, event: RoomEvent):
        await self.publish_event(event, event.model_dump(mode="json"))

    async def publish_message_sent(self, event: MessageSent):
        await self.publish_message_event(event)

    async def publish_message_edited(self, event: MessageEdited):
        await self.publish_message_event(event)

    async def publish_message_deleted(self, event: MessageDeleted):
        payload = event.message.model_dump(mode="json")
        payload["content"] = "<This message has been deleted>"
        await self.publish_event(event, payload)

    async def publish_user_joined(self, event: UserJoined):
        await self.publish_room_event(event)

    async def publish_user_left(self, event: UserLeft):
        await self.publish_room_event(event)

    async def publish_typing(self, event: Typing):
        await self.publish_room_event(event)

    def register_all(self, dispatcher) -> None:
        dispatcher.register("MessageSent", self.publish_message_sent)
        dispatcher.register("MessageEdited", self.publish_message_edited)
        dispatcher.register("MessageDeleted", self.publish_message_deleted)
        dispatcher.register("UserJoined", self.publish_user_joined)
        dispatcher.register("UserLeft", self.publish_user_left)
        dispatcher.register("Typing", self.publish_typing)
