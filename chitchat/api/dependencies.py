# chitchat/api/dependencies.py
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from chitchat.config import AppConfig
from chitchat.gateways.contact_gateway import ContactGateway
from chitchat.gateways.message_gateway import MessageGateway
from chitchat.gateways.room_gateway import RoomGateway
from chitchat.gateways.user_gateway import UserGateway
from chitchat.infrastructure import schemas
from chitchat.infrastructure.ai_providers import AIProviderRegistry
from chitchat.infrastructure.attachment_store import AttachmentStore
from chitchat.infrastructure.broadcaster import EventBroadcaster
from chitchat.infrastructure.security import SecurityService
from chitchat.infrastructure.uow import UnitOfWork
from chitchat.interactors.access_guard import AccessGuard
from chitchat.interactors.friend_interactor import FriendInteractor
from chitchat.interactors.message_interactor import MessageInteractor
from chitchat.interactors.room_interactor import RoomInteractor
from chitchat.interactors.user_interactor import UserInteractor

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_security_service(request: Request) -> SecurityService:
    return request.app.state.security_service


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster


def get_attachment_store(request: Request) -> AttachmentStore:
    return request.app.state.attachment_store


def get_ai_registry(request: Request) -> AIProviderRegistry:
    return request.app.state.ai_registry


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.database.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_uow(session: AsyncSession = Depends(get_session)) -> UnitOfWork:
    return UnitOfWork(session)


async def get_user_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return UserGateway(session, uow)


async def get_room_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return RoomGateway(session, uow)


async def get_message_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return MessageGateway(session, uow)


async def get_contact_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return ContactGateway(session, uow)


async def get_access_guard(room_gateway: RoomGateway = Depends(get_room_gateway)):
    return AccessGuard(room_gateway)


async def get_user_interactor(
    uow: UnitOfWork = Depends(get_uow),
    security_service: SecurityService = Depends(get_security_service),
    user_gateway: UserGateway = Depends(get_user_gateway),
):
    return UserInteractor(uow, security_service, user_gateway)


async def get_room_interactor(
    uow: UnitOfWork = Depends(get_uow),
    room_gateway: RoomGateway = Depends(get_room_gateway),
    user_gateway: UserGateway = Depends(get_user_gateway),
    access_guard: AccessGuard = Depends(get_access_guard),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    return RoomInteractor(uow, room_gateway, user_gateway, access_guard, broadcaster)


async def get_message_interactor(
    uow: UnitOfWork = Depends(get_uow),
    message_gateway: MessageGateway = Depends(get_message_gateway),
    user_gateway: UserGateway = Depends(get_user_gateway),
    access_guard: AccessGuard = Depends(get_access_guard),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    attachment_store: AttachmentStore = Depends(get_attachment_store),
    config: AppConfig = Depends(get_config),
):
    return MessageInteractor(
        uow,
        message_gateway,
        user_gateway,
        access_guard,
        broadcaster,
        attachment_store,
        config,
    )


async def get_friend_interactor(
    uow: UnitOfWork = Depends(get_uow),
    contact_gateway: ContactGateway = Depends(get_contact_gateway),
    user_gateway: UserGateway = Depends(get_user_gateway),
):
    return FriendInteractor(uow, contact_gateway, user_gateway)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    security_service: SecurityService = Depends(get_security_service),
    user_gateway: UserGateway = Depends(get_user_gateway),
) -> schemas.User:
    user_id = security_service.decode_access_token(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_model = await user_gateway.get_user(user_id)
    if user_model is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return schemas.User.model_validate(user_model._model)


async def get_current_active_user(
    current_user: schemas.User = Depends(get_current_user),
) -> schemas.User:
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive user",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user
