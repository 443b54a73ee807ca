# chitchat/interactors/room_interactor.py
import logging

from chitchat.domain.enums import ParticipantRole
from chitchat.domain.events import UserJoined, UserLeft
from chitchat.domain.exceptions import (
    AlreadyMemberError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    PreconditionFailedError,
)
from chitchat.gateways.interfaces import IRoomGateway, IUserGateway
from chitchat.infrastructure import schemas
from chitchat.infrastructure.broadcaster import EventBroadcaster
from chitchat.infrastructure.models import MAX_ROOM_NAME_LENGTH
from chitchat.infrastructure.uow import UnitOfWork
from chitchat.interactors.access_guard import AccessGuard

logger = logging.getLogger("ChitChat.rooms")


class RoomInteractor:
    def __init__(
        self,
        uow: UnitOfWork,
        room_gateway: IRoomGateway,
        user_gateway: IUserGateway,
        access_guard: AccessGuard,
        broadcaster: EventBroadcaster,
    ):
        self.uow = uow
        self.room_gateway = room_gateway
        self.user_gateway = user_gateway
        self.access_guard = access_guard
        self.broadcaster = broadcaster

    async def create_room(
        self, creator_id: int, room: schemas.RoomCreate
    ) -> schemas.Room:
        if not room.is_group:
            raise InvalidArgumentError(
                "Direct rooms are opened through /rooms/direct/{other_user_id}"
            )
        name = room.name.strip()
        if not name or len(name) > MAX_ROOM_NAME_LENGTH:
            raise InvalidArgumentError(
                f"Room name must be between 1 and {MAX_ROOM_NAME_LENGTH} characters"
            )
        member_ids = [
            user_id
            for user_id in dict.fromkeys(room.participant_ids)
            if user_id != creator_id
        ]
        users = await self.user_gateway.get_users_by_ids(set(member_ids))
        missing = [user_id for user_id in member_ids if user_id not in users]
        if missing:
            raise NotFoundError(f"Users not found: {missing}")

        new_room = await self.room_gateway.create_room(
            name, room.is_group, creator_id, room.description
        )
        await self.room_gateway.add_participant(
            new_room.id, creator_id, ParticipantRole.ADMIN
        )
        for user_id in member_ids:
            await self.room_gateway.add_participant(
                new_room.id, user_id, ParticipantRole.MEMBER
            )
        await self.uow.commit()
        logger.info(
            f"User {creator_id} created room {new_room.id} with {len(member_ids)} members"
        )

        for user_id in member_ids:
            username = users[user_id].username
            self.broadcaster.publish(
                UserJoined(
                    room_id=new_room.id,
                    user_id=user_id,
                    username=username,
                    text=f"{username} joined the room",
                )
            )
        return schemas.Room.model_validate(new_room._model)

    async def find_or_create_direct_room(
        self, user_id: int, other_user_id: int
    ) -> schemas.Room:
        if user_id == other_user_id:
            raise InvalidArgumentError("Cannot open a direct room with yourself")
        users = await self.user_gateway.get_users_by_ids({user_id, other_user_id})
        for participant_id in (user_id, other_user_id):
            if participant_id not in users:
                raise NotFoundError(f"User {participant_id} not found")
            if not users[participant_id].is_active:
                raise PreconditionFailedError(f"User {participant_id} is deactivated")

        room = await self.room_gateway.get_direct_room(user_id, other_user_id)
        if room:
            await self._rejoin_direct_room(room.id, users)
            return schemas.Room.model_validate(room._model)

        room = await self.room_gateway.create_direct_room(user_id, other_user_id)
        if room is None:
            # lost the insert race; the winner's room is the answer
            room = await self.room_gateway.get_direct_room(user_id, other_user_id)
            if room is None:
                raise ConflictError("Direct room could not be created")
            await self._rejoin_direct_room(room.id, users)
            return schemas.Room.model_validate(room._model)

        await self.uow.commit()
        logger.info(
            f"Created direct room {room.id} for users {user_id} and {other_user_id}"
        )
        return schemas.Room.model_validate(room._model)

    async def _rejoin_direct_room(self, room_id: int, users: dict) -> None:
        """Reactivate whichever side of a direct room has left it.

        The pair keeps a single direct room forever, so a member who left comes
        back into the same room instead of getting a new one.
        """
        rejoined = []
        for user_id in users:
            participant = await self.room_gateway.get_participant(room_id, user_id)
            if participant is None:
                if await self.room_gateway.add_participant(
                    room_id, user_id, ParticipantRole.MEMBER
                ):
                    rejoined.append(user_id)
            elif not participant.is_active:
                participant.is_active = True
                participant.role = ParticipantRole.MEMBER
                rejoined.append(user_id)
        if not rejoined:
            return
        await self.uow.commit()
        logger.info(f"Users {rejoined} rejoined direct room {room_id}")
        for user_id in rejoined:
            username = users[user_id].username
            self.broadcaster.publish(
                UserJoined(
                    room_id=room_id,
                    user_id=user_id,
                    username=username,
                    text=f"{username} joined the room",
                )
            )

    async def add_participant(
        self, acting_user_id: int, room_id: int, new_user_id: int
    ) -> schemas.ParticipantInfo:
        await self.access_guard.ensure_moderator(acting_user_id, room_id)
        user = await self.user_gateway.get_user(new_user_id)
        if not user:
            raise NotFoundError(f"User {new_user_id} not found")
        if not user.is_active:
            raise PreconditionFailedError(f"User {new_user_id} is deactivated")

        participant = await self.room_gateway.get_participant(room_id, new_user_id)
        if participant is not None:
            if participant.is_active:
                raise AlreadyMemberError(
                    f"User {new_user_id} is already in room {room_id}"
                )
            participant.is_active = True
            participant.role = ParticipantRole.MEMBER
        else:
            participant = await self.room_gateway.add_participant(
                room_id, new_user_id, ParticipantRole.MEMBER
            )
            if participant is None:
                raise AlreadyMemberError(
                    f"User {new_user_id} is already in room {room_id}"
                )
        await self.uow.commit()
        logger.info(f"User {acting_user_id} added user {new_user_id} to room {room_id}")

        self.broadcaster.publish(
            UserJoined(
                room_id=room_id,
                user_id=new_user_id,
                username=user.username,
                text=f"{user.username} joined the room",
            )
        )
        return schemas.ParticipantInfo(
            user=schemas.UserBasic.model_validate(user._model),
            role=ParticipantRole.MEMBER,
        )

    async def remove_participant(
        self, acting_user_id: int, room_id: int, target_user_id: int
    ) -> None:
        await self.access_guard.ensure_moderator(acting_user_id, room_id)
        participant = await self.room_gateway.get_participant(room_id, target_user_id)
        if participant is None or not participant.is_active:
            raise NotFoundError(f"User {target_user_id} is not in room {room_id}")
        user = await self.user_gateway.get_user(target_user_id)
        participant.is_active = False
        await self.uow.commit()
        logger.info(
            f"User {acting_user_id} removed user {target_user_id} from room {room_id}"
        )
        self._announce_departure(room_id, target_user_id, user)

    async def leave_room(self, user_id: int, room_id: int) -> None:
        await self.access_guard.ensure_room_access(user_id, room_id)
        participant = await self.room_gateway.get_participant(room_id, user_id)
        user = await self.user_gateway.get_user(user_id)
        participant.is_active = False
        await self.uow.commit()
        logger.info(f"User {user_id} left room {room_id}")
        self._announce_departure(room_id, user_id, user)

    def _announce_departure(self, room_id: int, user_id: int, user) -> None:
        username = user.username if user else str(user_id)
        self.broadcaster.publish(
            UserLeft(
                room_id=room_id,
                user_id=user_id,
                username=username,
                text=f"{username} left the room",
            )
        )

    async def rooms_for_user(self, user_id: int) -> list[schemas.RoomSummary]:
        rooms = await self.room_gateway.rooms_for_user(user_id)
        logger.debug(f"User {user_id} is in {len(rooms)} rooms")
        return [
            schemas.RoomSummary.model_validate(room).model_copy(
                update={"participant_count": count}
            )
            for room, count in rooms
        ]

    async def room_details(self, user_id: int, room_id: int) -> schemas.RoomDetails:
        await self.access_guard.ensure_room_access(user_id, room_id)
        room = await self.room_gateway.get_room(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found")
        participants = [
            schemas.ParticipantInfo(
                user=schemas.UserBasic.model_validate(user), role=participant.role
            )
            for participant, user in await self.room_gateway.participants_of(room_id)
        ]
        return schemas.RoomDetails.model_validate(room._model).model_copy(
            update={
                "participant_count": len(participants),
                "participants": participants,
            }
        )
