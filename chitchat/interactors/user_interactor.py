# chitchat/interactors/user_interactor.py
import logging

from chitchat.domain.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from chitchat.gateways.interfaces import IUserGateway
from chitchat.infrastructure import schemas
from chitchat.infrastructure.security import SecurityService
from chitchat.infrastructure.uow import UnitOfWork, UoWModel

logger = logging.getLogger("ChitChat.users")


class UserInteractor:
    def __init__(
        self,
        uow: UnitOfWork,
        security_service: SecurityService,
        user_gateway: IUserGateway,
    ):
        self.uow = uow
        self.security_service = security_service
        self.user_gateway = user_gateway

    async def get_user(self, user_id: int) -> schemas.User | None:
        user: UoWModel | None = await self.user_gateway.get_user(user_id)
        return schemas.User.model_validate(user._model) if user else None

    async def create_user(self, user: schemas.UserCreate) -> schemas.User:
        if not user.username.strip():
            raise InvalidArgumentError("Username cannot be empty")
        new_user: UoWModel | None = await self.user_gateway.create_user(
            user, self.security_service
        )
        if new_user is None:
            raise ConflictError("Username or email already registered")
        await self.uow.commit()
        logger.info(f"Registered user {new_user.id} ({new_user.username})")
        return schemas.User.model_validate(new_user._model)

    async def verify_user_password(
        self, login: str, password: str
    ) -> schemas.User | None:
        """Resolve a username (or email) and password pair to an active user."""
        user: UoWModel | None = await self.user_gateway.get_by_username(login)
        if user is None and "@" in login:
            user = await self.user_gateway.get_by_email(login)
        if user is None or not user.is_active:
            return None
        if not self.security_service.verify_password(password, user.hashed_password):
            return None
        return schemas.User.model_validate(user._model)

    async def update_user(
        self, user_id: int, user_update: schemas.UserUpdate
    ) -> schemas.User:
        user: UoWModel | None = await self.user_gateway.get_user(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        if user_update.email is not None:
            owner = await self.user_gateway.get_by_email(user_update.email)
            if owner and owner.id != user_id:
                raise ConflictError("Email already registered")
        if user_update.username is not None:
            if not user_update.username.strip():
                raise InvalidArgumentError("Username cannot be empty")
            owner = await self.user_gateway.get_by_username(user_update.username)
            if owner and owner.id != user_id:
                raise ConflictError("Username already registered")
        updated_user = await self.user_gateway.update_user(
            user, user_update, self.security_service
        )
        await self.uow.commit()
        logger.info(f"Updated profile of user {user_id}")
        return schemas.User.model_validate(updated_user._model)

    async def deactivate_user(self, user_id: int) -> None:
        user: UoWModel | None = await self.user_gateway.get_user(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        user.is_active = False
        await self.uow.commit()
        logger.info(f"Deactivated user {user_id}")

    async def search_users(
        self, query: str, current_user_id: int
    ) -> list[schemas.UserBasic]:
        if not query.strip():
            raise InvalidArgumentError("Search query cannot be empty")
        users: list[UoWModel] = await self.user_gateway.search_users(
            query.strip(), current_user_id
        )
        logger.debug(f"User search by {current_user_id} matched {len(users)} users")
        return [schemas.UserBasic.model_validate(user._model) for user in users]
