# chitchat/gateways/user_gateway.py

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chitchat.gateways.interfaces import IUserGateway
from chitchat.infrastructure import models, schemas
from chitchat.infrastructure.data_mappers import SQLAlchemyMapper
from chitchat.infrastructure.database import like_pattern
from chitchat.infrastructure.security import SecurityService
from chitchat.infrastructure.uow import UnitOfWork, UoWModel


class UserGateway(IUserGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.User] = SQLAlchemyMapper(session)

    async def get_user(self, user_id: int) -> UoWModel | None:
        stmt = select(models.User).filter(models.User.id == user_id)
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        return UoWModel(user, self.uow) if user else None

    async def get_by_email(self, email: str) -> UoWModel | None:
        stmt = select(models.User).filter(
            func.lower(models.User.email) == func.lower(email)
        )
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        return UoWModel(user, self.uow) if user else None

    async def get_by_username(self, username: str) -> UoWModel | None:
        stmt = select(models.User).filter(
            func.lower(models.User.username) == func.lower(username)
        )
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        return UoWModel(user, self.uow) if user else None

    async def get_users_by_ids(self, user_ids: set[int]) -> dict[int, models.User]:
        if not user_ids:
            return {}
        stmt = select(models.User).filter(models.User.id.in_(user_ids))
        result = await self.session.execute(stmt)
        return {user.id: user for user in result.scalars().all()}

    async def create_user(
        self, user: schemas.UserCreate, security_service: SecurityService
    ) -> UoWModel | None:
        existing_user = await self.get_by_email(user.email)
        if existing_user:
            return None
        existing_username = await self.get_by_username(user.username)
        if existing_username:
            return None

        hashed_password = security_service.get_password_hash(user.password)
        db_user = models.User(
            **user.model_dump(exclude={"password"}),
            hashed_password=hashed_password,
            is_active=True,
        )
        uow_user = self.uow.register_new(db_user)
        await self.uow.flush()
        return uow_user

    async def update_user(
        self,
        user: UoWModel,
        user_update: schemas.UserUpdate,
        security_service: SecurityService,
    ) -> UoWModel:
        user_update_data = user_update.model_dump(exclude_unset=True)
        if "password" in user_update_data:
            user.hashed_password = security_service.get_password_hash(
                user_update_data.pop("password")
            )
        for key, value in user_update_data.items():
            setattr(user, key, value)
        return user

    async def search_users(self, query: str, current_user_id: int) -> list[UoWModel]:
        pattern = like_pattern(query)
        stmt = (
            select(models.User)
            .filter(
                models.User.id != current_user_id,
                models.User.is_active.is_(True),
                or_(
                    models.User.username.ilike(pattern, escape="\\"),
                    models.User.display_name.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(models.User.username)
            .limit(50)
        )
        result = await self.session.execute(stmt)
        users = result.scalars().all()
        return [UoWModel(user, self.uow) for user in users]
