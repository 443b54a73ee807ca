# chitchat/gateways/message_gateway.py
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chitchat.domain.enums import MessageType
from chitchat.gateways.interfaces import IMessageGateway
from chitchat.infrastructure import models
from chitchat.infrastructure.data_mappers import SQLAlchemyMapper
from chitchat.infrastructure.database import like_pattern
from chitchat.infrastructure.uow import UnitOfWork, UoWModel


class MessageGateway(IMessageGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Message] = SQLAlchemyMapper(session)
        uow.mappers[models.MessageAttachment] = SQLAlchemyMapper(session)

    async def get_message(self, message_id: int) -> UoWModel | None:
        stmt = select(models.Message).filter(models.Message.id == message_id)
        result = await self.session.execute(stmt)
        message = result.scalar_one_or_none()
        return UoWModel(message, self.uow) if message else None

    async def create_message(
        self,
        room_id: int,
        sender_id: int,
        content: str,
        message_type: MessageType,
        sent_at: datetime,
    ) -> UoWModel:
        db_message = models.Message(
            room_id=room_id,
            sender_id=sender_id,
            content=content,
            message_type=message_type,
            sent_at=sent_at,
            is_active=True,
        )
        uow_message = self.uow.register_new(db_message)
        await self.uow.flush()
        return uow_message

    async def get_page(
        self, room_id: int, skip: int = 0, limit: int = 50
    ) -> list[models.Message]:
        stmt = (
            select(models.Message)
            .filter(
                models.Message.room_id == room_id,
                models.Message.is_active.is_(True),
            )
            .order_by(models.Message.sent_at.desc(), models.Message.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def search_in_room(
        self, room_id: int, query: str, skip: int = 0, limit: int = 50
    ) -> list[models.Message]:
        stmt = (
            select(models.Message)
            .filter(
                models.Message.room_id == room_id,
                models.Message.is_active.is_(True),
                models.Message.content.ilike(like_pattern(query), escape="\\"),
            )
            .order_by(models.Message.sent_at.desc(), models.Message.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def search_across_user_rooms(
        self, user_id: int, query: str, skip: int = 0, limit: int = 50
    ) -> list[tuple[models.Message, str]]:
        stmt = (
            select(models.Message, models.Room.name)
            .join(models.Room, models.Room.id == models.Message.room_id)
            .join(
                models.Participant,
                models.Participant.room_id == models.Message.room_id,
            )
            .filter(
                models.Participant.user_id == user_id,
                models.Participant.is_active.is_(True),
                models.Room.is_active.is_(True),
                models.Message.is_active.is_(True),
                models.Message.content.ilike(like_pattern(query), escape="\\"),
            )
            .order_by(models.Message.sent_at.desc(), models.Message.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(message, room_name) for message, room_name in result.all()]

    async def create_attachment(
        self,
        message_id: int,
        file_name: str,
        file_handle: str,
        file_type: str | None,
        file_size: int,
    ) -> UoWModel:
        db_attachment = models.MessageAttachment(
            message_id=message_id,
            file_name=file_name,
            file_handle=file_handle,
            file_type=file_type,
            file_size=file_size,
            is_active=True,
        )
        uow_attachment = self.uow.register_new(db_attachment)
        await self.uow.flush()
        return uow_attachment

    async def attachments_of(self, message_id: int) -> list[models.MessageAttachment]:
        stmt = (
            select(models.MessageAttachment)
            .filter(
                models.MessageAttachment.message_id == message_id,
                models.MessageAttachment.is_active.is_(True),
            )
            .order_by(models.MessageAttachment.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_attachment(self, attachment_id: int) -> UoWModel | None:
        stmt = select(models.MessageAttachment).filter(
            models.MessageAttachment.id == attachment_id,
            models.MessageAttachment.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        attachment = result.scalar_one_or_none()
        return UoWModel(attachment, self.uow) if attachment else None
