# chitchat/api/ws.py
import asyncio
import json
import logging

from fastapi import APIRouter, FastAPI, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from redis.asyncio.client import PubSub

from chitchat.domain.enums import EventKind, MessageType
from chitchat.domain.events import Typing, UserJoined, UserLeft
from chitchat.domain.exceptions import ChatError, InvalidArgumentError
from chitchat.gateways.message_gateway import MessageGateway
from chitchat.gateways.room_gateway import RoomGateway
from chitchat.gateways.user_gateway import UserGateway
from chitchat.infrastructure import schemas
from chitchat.infrastructure.event_handlers import room_channel
from chitchat.infrastructure.uow import UnitOfWork
from chitchat.interactors.access_guard import AccessGuard
from chitchat.interactors.message_interactor import MessageInteractor

logger = logging.getLogger("ChitChat.ws")

router = APIRouter()

WS_UNAUTHENTICATED = 4401
WS_FORBIDDEN = 4403


async def _authorize(
    app: FastAPI, token: str | None, room_id: int
) -> tuple[int, str] | int:
    """Return (user id, username) for a member of the room, or a close code."""
    user_id = app.state.security_service.decode_access_token(token) if token else None
    if user_id is None:
        return WS_UNAUTHENTICATED
    async with app.state.database.session() as session:
        uow = UnitOfWork(session)
        user = await UserGateway(session, uow).get_user(user_id)
        if user is None or not user.is_active:
            return WS_UNAUTHENTICATED
        guard = AccessGuard(RoomGateway(session, uow))
        if not await guard.can_access_room(user_id, room_id):
            return WS_FORBIDDEN
        return user_id, user.username


async def _send_message(
    app: FastAPI, user_id: int, room_id: int, content: str, message_type: MessageType
) -> None:
    async with app.state.database.session() as session:
        uow = UnitOfWork(session)
        room_gateway = RoomGateway(session, uow)
        interactor = MessageInteractor(
            uow,
            MessageGateway(session, uow),
            UserGateway(session, uow),
            AccessGuard(room_gateway),
            app.state.broadcaster,
            app.state.attachment_store,
            app.state.config,
        )
        try:
            await interactor.send(user_id, room_id, content, message_type)
        except Exception:
            await session.rollback()
            raise


async def _is_member(app: FastAPI, user_id: int, room_id: int) -> bool:
    async with app.state.database.session() as session:
        uow = UnitOfWork(session)
        return await AccessGuard(RoomGateway(session, uow)).can_access_room(
            user_id, room_id
        )


def _is_departure_of(data: str, user_id: int) -> bool:
    envelope = json.loads(data)
    return (
        envelope.get("type") == EventKind.USER_LEFT.value
        and envelope.get("payload", {}).get("user_id") == user_id
    )


async def _forward_events(
    app: FastAPI, pubsub: PubSub, websocket: WebSocket, user_id: int, room_id: int
) -> None:
    while True:
        message = await pubsub.get_message(timeout=1.0)
        if message is None or message["type"] != "message":
            continue
        await websocket.send_text(message["data"])
        # a USER_LEFT for this user is either another tab going offline or a removal
        if _is_departure_of(message["data"], user_id) and not await _is_member(
            app, user_id, room_id
        ):
            logger.info(f"Closing socket of user {user_id}, no longer in room {room_id}")
            await websocket.close(code=WS_FORBIDDEN)
            return


async def _handle_frame(
    app: FastAPI, frame: dict, user_id: int, username: str, room_id: int
) -> None:
    frame_type = frame.get("type")
    if frame_type == "TYPING":
        is_typing = bool(frame.get("is_typing", True))
        app.state.broadcaster.publish(
            Typing(
                room_id=room_id,
                user_id=user_id,
                username=username,
                text=f"{username} is typing" if is_typing else "",
                is_typing=is_typing,
            )
        )
    elif frame_type == "SEND_MESSAGE":
        try:
            request = schemas.MessageCreate.model_validate(frame)
        except ValidationError as e:
            raise InvalidArgumentError(
                f"Malformed message frame: {e.errors()[0]['msg']}"
            ) from e
        await _send_message(app, user_id, room_id, request.content, request.message_type)
    else:
        raise InvalidArgumentError(f"Unsupported frame type: {frame_type}")


@router.websocket("/rooms/{room_id}")
async def room_events(
    websocket: WebSocket, room_id: int, token: str | None = Query(None)
):
    app = websocket.app
    authorized = await _authorize(app, token, room_id)
    if isinstance(authorized, int):
        await websocket.close(code=authorized)
        return
    user_id, username = authorized

    await websocket.accept()
    broadcaster = app.state.broadcaster
    async with app.state.redis_client.subscribe(room_channel(room_id)) as pubsub:
        forwarder = asyncio.create_task(
            _forward_events(app, pubsub, websocket, user_id, room_id)
        )
        logger.info(f"User {user_id} connected to room {room_id}")
        broadcaster.publish(
            UserJoined(
                room_id=room_id,
                user_id=user_id,
                username=username,
                text=f"{username} is online",
            )
        )
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    frame = json.loads(raw)
                    if not isinstance(frame, dict):
                        raise InvalidArgumentError("Frames must be JSON objects")
                    await _handle_frame(app, frame, user_id, username, room_id)
                except json.JSONDecodeError:
                    await websocket.send_json(
                        {
                            "type": "ERROR",
                            "code": InvalidArgumentError.code,
                            "message": "Frames must be valid JSON",
                        }
                    )
                except ChatError as e:
                    await websocket.send_json(
                        {"type": "ERROR", "code": e.code, "message": e.message}
                    )
        except WebSocketDisconnect:
            pass
        finally:
            # publish before the first await; the task may already be cancelled
            broadcaster.publish(
                UserLeft(
                    room_id=room_id,
                    user_id=user_id,
                    username=username,
                    text=f"{username} went offline",
                )
            )
            logger.info(f"User {user_id} disconnected from room {room_id}")
            forwarder.cancel()
            await asyncio.gather(forwarder, return_exceptions=True)
