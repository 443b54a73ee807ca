# chitchat/gateways/contact_gateway.py
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chitchat.domain.enums import ContactStatus
from chitchat.gateways.interfaces import IContactGateway
from chitchat.infrastructure import models
from chitchat.infrastructure.data_mappers import SQLAlchemyMapper
from chitchat.infrastructure.models import pair_key
from chitchat.infrastructure.uow import UnitOfWork, UoWModel


class ContactGateway(IContactGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Contact] = SQLAlchemyMapper(session)

    async def get_contact(self, contact_id: int) -> UoWModel | None:
        stmt = select(models.Contact).filter(models.Contact.id == contact_id)
        result = await self.session.execute(stmt)
        contact = result.scalar_one_or_none()
        return UoWModel(contact, self.uow) if contact else None

    async def get_directed(self, user_id: int, friend_id: int) -> UoWModel | None:
        stmt = select(models.Contact).filter(
            models.Contact.user_id == user_id, models.Contact.friend_id == friend_id
        )
        result = await self.session.execute(stmt)
        contact = result.scalar_one_or_none()
        return UoWModel(contact, self.uow) if contact else None

    async def any_active_between(self, user_id: int, other_id: int) -> bool:
        stmt = (
            select(models.Contact.id)
            .filter(
                models.Contact.pair_key == pair_key(user_id, other_id),
                models.Contact.is_active.is_(True),
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def create_request(
        self, sender_id: int, recipient_id: int
    ) -> UoWModel | None:
        """Insert a PENDING row; None if a competing row won the race."""
        db_contact = models.Contact(
            user_id=sender_id,
            friend_id=recipient_id,
            status=ContactStatus.PENDING,
            is_active=True,
            pair_key=pair_key(sender_id, recipient_id),
        )
        try:
            async with self.uow.savepoint():
                uow_contact = self.uow.register_new(db_contact)
        except IntegrityError:
            return None
        return uow_contact

    async def upsert_accepted(self, user_id: int, friend_id: int) -> UoWModel:
        existing = await self.get_directed(user_id, friend_id)
        if existing is None:
            db_contact = models.Contact(
                user_id=user_id,
                friend_id=friend_id,
                status=ContactStatus.ACCEPTED,
                is_active=True,
                pair_key=pair_key(user_id, friend_id),
            )
            try:
                async with self.uow.savepoint():
                    uow_contact = self.uow.register_new(db_contact)
                return uow_contact
            except IntegrityError:
                # inserted concurrently, fall through and update it
                existing = await self.get_directed(user_id, friend_id)
                if existing is None:
                    raise
        existing.status = ContactStatus.ACCEPTED
        existing.is_active = True
        return existing

    async def delete_contact(self, contact: UoWModel) -> None:
        self.uow.register_deleted(contact)

    async def friends_of(self, user_id: int) -> list[models.User]:
        stmt = (
            select(models.User)
            .join(
                models.Contact,
                or_(
                    and_(
                        models.Contact.user_id == user_id,
                        models.Contact.friend_id == models.User.id,
                    ),
                    and_(
                        models.Contact.friend_id == user_id,
                        models.Contact.user_id == models.User.id,
                    ),
                ),
            )
            .filter(
                models.Contact.status == ContactStatus.ACCEPTED,
                models.Contact.is_active.is_(True),
                models.User.is_active.is_(True),
            )
            .distinct()
            .order_by(models.User.username)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def pending_for(
        self, user_id: int
    ) -> list[tuple[models.Contact, models.User]]:
        stmt = (
            select(models.Contact, models.User)
            .join(models.User, models.User.id == models.Contact.user_id)
            .filter(
                models.Contact.friend_id == user_id,
                models.Contact.status == ContactStatus.PENDING,
                models.Contact.is_active.is_(True),
            )
            .order_by(models.Contact.created_at.desc(), models.Contact.id.desc())
        )
        result = await self.session.execute(stmt)
        return [(contact, sender) for contact, sender in result.all()]
