# chitchat/gateways/room_gateway.py
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chitchat.domain.enums import ParticipantRole
from chitchat.gateways.interfaces import IRoomGateway
from chitchat.infrastructure import models
from chitchat.infrastructure.data_mappers import SQLAlchemyMapper
from chitchat.infrastructure.models import pair_key
from chitchat.infrastructure.uow import UnitOfWork, UoWModel

DIRECT_ROOM_NAME = "Direct Message"


class RoomGateway(IRoomGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Room] = SQLAlchemyMapper(session)
        uow.mappers[models.Participant] = SQLAlchemyMapper(session)

    async def get_room(self, room_id: int) -> Optional[UoWModel]:
        stmt = select(models.Room).filter(
            models.Room.id == room_id, models.Room.is_active.is_(True)
        )
        result = await self.session.execute(stmt)
        room = result.scalar_one_or_none()
        return UoWModel(room, self.uow) if room else None

    async def get_direct_room(self, user_a: int, user_b: int) -> Optional[UoWModel]:
        stmt = select(models.Room).filter(
            models.Room.direct_key == pair_key(user_a, user_b)
        )
        result = await self.session.execute(stmt)
        room = result.scalar_one_or_none()
        return UoWModel(room, self.uow) if room else None

    async def create_room(
        self,
        name: str,
        is_group: bool,
        creator_id: int,
        description: Optional[str] = None,
    ) -> UoWModel:
        db_room = models.Room(
            name=name,
            is_group=is_group,
            creator_id=creator_id,
            description=description,
            is_active=True,
        )
        uow_room = self.uow.register_new(db_room)
        await self.uow.flush()
        return uow_room

    async def create_direct_room(self, user_a: int, user_b: int) -> Optional[UoWModel]:
        """Insert the direct room of a pair, or return None if one already exists.

        The unique ``direct_key`` decides concurrent inserts for the same pair;
        the loser's savepoint is rolled back and the caller re-reads the winner.
        """
        db_room = models.Room(
            name=DIRECT_ROOM_NAME,
            is_group=False,
            creator_id=user_a,
            direct_key=pair_key(user_a, user_b),
            is_active=True,
        )
        try:
            async with self.uow.savepoint():
                uow_room = self.uow.register_new(db_room)
                await self.uow.flush()
                for user_id in (user_a, user_b):
                    self.uow.register_new(
                        models.Participant(
                            room_id=db_room.id,
                            user_id=user_id,
                            role=ParticipantRole.MEMBER,
                            is_active=True,
                        )
                    )
        except IntegrityError:
            return None
        return uow_room

    async def get_participant(self, room_id: int, user_id: int) -> Optional[UoWModel]:
        stmt = select(models.Participant).filter(
            models.Participant.room_id == room_id,
            models.Participant.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        participant = result.scalar_one_or_none()
        return UoWModel(participant, self.uow) if participant else None

    async def get_active_participant(
        self, room_id: int, user_id: int
    ) -> Optional[models.Participant]:
        stmt = select(models.Participant).filter(
            models.Participant.room_id == room_id,
            models.Participant.user_id == user_id,
            models.Participant.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_participant(
        self, room_id: int, user_id: int, role: ParticipantRole
    ) -> Optional[UoWModel]:
        """Insert a membership row; None if the (room, user) row already exists."""
        db_participant = models.Participant(
            room_id=room_id, user_id=user_id, role=role, is_active=True
        )
        try:
            async with self.uow.savepoint():
                uow_participant = self.uow.register_new(db_participant)
        except IntegrityError:
            return None
        return uow_participant

    async def participants_of(
        self, room_id: int
    ) -> List[tuple[models.Participant, models.User]]:
        stmt = (
            select(models.Participant, models.User)
            .join(models.User, models.User.id == models.Participant.user_id)
            .filter(
                models.Participant.room_id == room_id,
                models.Participant.is_active.is_(True),
            )
            .order_by(models.Participant.id)
        )
        result = await self.session.execute(stmt)
        return [(participant, user) for participant, user in result.all()]

    async def rooms_for_user(self, user_id: int) -> List[tuple[models.Room, int]]:
        counts = (
            select(
                models.Participant.room_id,
                func.count(models.Participant.id).label("participant_count"),
            )
            .filter(models.Participant.is_active.is_(True))
            .group_by(models.Participant.room_id)
            .subquery()
        )
        stmt = (
            select(models.Room, counts.c.participant_count)
            .join(models.Participant, models.Participant.room_id == models.Room.id)
            .join(counts, counts.c.room_id == models.Room.id)
            .filter(
                models.Participant.user_id == user_id,
                models.Participant.is_active.is_(True),
                models.Room.is_active.is_(True),
            )
            .order_by(models.Room.created_at.desc(), models.Room.id.desc())
        )
        result = await self.session.execute(stmt)
        return [(room, count) for room, count in result.all()]
