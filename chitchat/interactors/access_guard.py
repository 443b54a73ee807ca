# chitchat/interactors/access_guard.py
from chitchat.domain.enums import ParticipantRole
from chitchat.domain.exceptions import UnauthorizedError
from chitchat.gateways.interfaces import IRoomGateway


class AccessGuard:
    """Room-level permission checks; reads memberships, never changes them."""

    def __init__(self, room_gateway: IRoomGateway):
        self.room_gateway = room_gateway

    async def can_access_room(self, user_id: int, room_id: int) -> bool:
        participant = await self.room_gateway.get_active_participant(room_id, user_id)
        return participant is not None

    async def can_moderate(self, user_id: int, room_id: int) -> bool:
        participant = await self.room_gateway.get_active_participant(room_id, user_id)
        return participant is not None and participant.role == ParticipantRole.ADMIN

    async def can_mutate_message(self, user_id: int, message) -> bool:
        if message.sender_id == user_id:
            return True
        return await self.can_moderate(user_id, message.room_id)

    async def ensure_room_access(self, user_id: int, room_id: int) -> None:
        if not await self.can_access_room(user_id, room_id):
            raise UnauthorizedError("Not a participant of this room")

    async def ensure_moderator(self, user_id: int, room_id: int) -> None:
        if not await self.can_moderate(user_id, room_id):
            raise UnauthorizedError("Only room admins can manage participants")
