# chitchat/interactors/message_interactor.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from chitchat.config import AppConfig
from chitchat.domain.enums import MessageType
from chitchat.domain.events import (
    MessageDeleted,
    MessageEdited,
    MessagePayload,
    MessageSent,
    UserInfo,
)
from chitchat.domain.exceptions import (
    EditWindowExpiredError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from chitchat.gateways.interfaces import IMessageGateway, IUserGateway
from chitchat.infrastructure import models, schemas
from chitchat.infrastructure.attachment_store import AttachmentStore
from chitchat.infrastructure.broadcaster import EventBroadcaster
from chitchat.infrastructure.models import MAX_MESSAGE_LENGTH
from chitchat.infrastructure.uow import UnitOfWork
from chitchat.interactors.access_guard import AccessGuard

logger = logging.getLogger("ChitChat.messages")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    # sqlite hands back naive datetimes for timezone-aware columns
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class MessageInteractor:
    def __init__(
        self,
        uow: UnitOfWork,
        message_gateway: IMessageGateway,
        user_gateway: IUserGateway,
        access_guard: AccessGuard,
        broadcaster: EventBroadcaster,
        attachment_store: AttachmentStore,
        config: AppConfig,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.uow = uow
        self.message_gateway = message_gateway
        self.user_gateway = user_gateway
        self.access_guard = access_guard
        self.broadcaster = broadcaster
        self.attachment_store = attachment_store
        self.config = config
        self.clock = clock

    @staticmethod
    def _validate_content(content: str) -> None:
        if not content or not content.strip() or len(content) > MAX_MESSAGE_LENGTH:
            raise InvalidArgumentError(
                f"Message content must be between 1 and {MAX_MESSAGE_LENGTH} characters"
            )

    def _validate_page(self, page: int, size: int) -> None:
        if page < 0:
            raise InvalidArgumentError("Page must be zero or positive")
        if size < 1 or size > self.config.MAX_PAGE_SIZE:
            raise InvalidArgumentError(
                f"Page size must be between 1 and {self.config.MAX_PAGE_SIZE}"
            )

    async def _with_senders(
        self,
        messages: Iterable[models.Message],
        room_names: dict[int, str] | None = None,
    ) -> list[schemas.Message]:
        messages = list(messages)
        senders = await self.user_gateway.get_users_by_ids(
            {message.sender_id for message in messages}
        )
        result = []
        for message in messages:
            sender = senders.get(message.sender_id)
            result.append(
                schemas.Message.model_validate(message).model_copy(
                    update={
                        "sender": schemas.UserBasic.model_validate(sender)
                        if sender
                        else None,
                        "room_name": (room_names or {}).get(message.id),
                    }
                )
            )
        return result

    @staticmethod
    def _payload(message, sender) -> MessagePayload:
        return MessagePayload(
            id=message.id,
            room_id=message.room_id,
            sender_id=message.sender_id,
            content=message.content,
            message_type=message.message_type,
            sent_at=message.sent_at,
            edited_at=message.edited_at,
            is_active=message.is_active,
            sender=UserInfo(id=sender.id, username=sender.username) if sender else None,
        )

    async def send(
        self,
        sender_id: int,
        room_id: int,
        content: str,
        message_type: MessageType = MessageType.TEXT,
    ) -> schemas.Message:
        await self.access_guard.ensure_room_access(sender_id, room_id)
        self._validate_content(content)
        sender = await self.user_gateway.get_user(sender_id)
        message = await self.message_gateway.create_message(
            room_id, sender_id, content, message_type, self.clock()
        )
        await self.uow.commit()
        logger.info(f"User {sender_id} sent message {message.id} to room {room_id}")

        payload = self._payload(message, sender)
        self.broadcaster.publish(MessageSent(room_id=room_id, message=payload))
        return (await self._with_senders([message._model]))[0]

    async def edit(
        self, user_id: int, message_id: int, new_content: str
    ) -> schemas.Message:
        message = await self.message_gateway.get_message(message_id)
        if message is None or not message.is_active:
            raise NotFoundError(f"Message {message_id} not found")
        if message.sender_id != user_id:
            raise UnauthorizedError("Only the sender can edit a message")
        now = self.clock()
        window = timedelta(hours=self.config.MESSAGE_EDIT_WINDOW_HOURS)
        if now - as_utc(message.sent_at) >= window:
            raise EditWindowExpiredError(
                f"Messages can only be edited within {self.config.MESSAGE_EDIT_WINDOW_HOURS} hours"
            )
        self._validate_content(new_content)
        sender = await self.user_gateway.get_user(user_id)

        message.content = new_content
        message.edited_at = now
        await self.uow.commit()
        logger.info(f"User {user_id} edited message {message_id}")

        payload = self._payload(message, sender)
        self.broadcaster.publish(MessageEdited(room_id=message.room_id, message=payload))
        return (await self._with_senders([message._model]))[0]

    async def delete(self, user_id: int, message_id: int) -> None:
        message = await self.message_gateway.get_message(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found")
        if not await self.access_guard.can_mutate_message(user_id, message):
            raise UnauthorizedError("Not allowed to delete this message")
        if not message.is_active:
            return
        sender = await self.user_gateway.get_user(message.sender_id)

        message.is_active = False
        await self.uow.commit()
        logger.info(f"User {user_id} deleted message {message_id}")

        payload = self._payload(message, sender)
        self.broadcaster.publish(
            MessageDeleted(room_id=message.room_id, message=payload)
        )

    async def page(
        self, room_id: int, user_id: int, page: int = 0, size: int = 50
    ) -> list[schemas.Message]:
        await self.access_guard.ensure_room_access(user_id, room_id)
        self._validate_page(page, size)
        messages = await self.message_gateway.get_page(room_id, page * size, size)
        logger.debug(f"Loaded {len(messages)} messages of room {room_id} page {page}")
        return await self._with_senders(messages)

    async def search(
        self,
        room_id: int | None,
        user_id: int,
        query: str,
        page: int = 0,
        size: int = 50,
    ) -> list[schemas.Message]:
        query = query.strip()
        if not query:
            raise InvalidArgumentError("Search query cannot be empty")
        self._validate_page(page, size)

        if room_id is not None:
            await self.access_guard.ensure_room_access(user_id, room_id)
            messages = await self.message_gateway.search_in_room(
                room_id, query, page * size, size
            )
            return await self._with_senders(messages)

        rows = await self.message_gateway.search_across_user_rooms(
            user_id, query, page * size, size
        )
        logger.debug(f"Search by user {user_id} matched {len(rows)} messages")
        return await self._with_senders(
            [message for message, _ in rows],
            {message.id: room_name for message, room_name in rows},
        )

    async def attach(
        self,
        user_id: int,
        message_id: int,
        file_name: str,
        content_type: str | None,
        data: bytes,
    ) -> schemas.Attachment:
        message = await self.message_gateway.get_message(message_id)
        if message is None or not message.is_active:
            raise NotFoundError(f"Message {message_id} not found")
        if message.sender_id != user_id:
            raise UnauthorizedError("Only the sender can attach files to a message")
        if not file_name:
            raise InvalidArgumentError("File name is required")
        if not data:
            raise InvalidArgumentError("File is empty")
        if len(data) > self.config.MAX_ATTACHMENT_BYTES:
            raise InvalidArgumentError(
                f"File exceeds {self.config.MAX_ATTACHMENT_BYTES} bytes"
            )

        handle = await self.attachment_store.store(data, file_name)
        try:
            attachment = await self.message_gateway.create_attachment(
                message_id, file_name, handle, content_type, len(data)
            )
            await self.uow.commit()
        except Exception:
            await self.attachment_store.delete(handle)
            raise
        logger.info(f"User {user_id} attached {file_name} to message {message_id}")
        return schemas.Attachment.model_validate(attachment._model)

    async def attachments_of(
        self, user_id: int, message_id: int
    ) -> list[schemas.Attachment]:
        message = await self.message_gateway.get_message(message_id)
        if message is None or not message.is_active:
            raise NotFoundError(f"Message {message_id} not found")
        await self.access_guard.ensure_room_access(user_id, message.room_id)
        attachments = await self.message_gateway.attachments_of(message_id)
        return [schemas.Attachment.model_validate(a) for a in attachments]

    async def load_attachment(
        self, user_id: int, attachment_id: int
    ) -> tuple[schemas.Attachment, bytes]:
        attachment = await self.message_gateway.get_attachment(attachment_id)
        if attachment is None:
            raise NotFoundError(f"Attachment {attachment_id} not found")
        message = await self.message_gateway.get_message(attachment.message_id)
        if message is None or not message.is_active:
            raise NotFoundError(f"Attachment {attachment_id} not found")
        await self.access_guard.ensure_room_access(user_id, message.room_id)
        data = await self.attachment_store.load(attachment.file_handle)
        return schemas.Attachment.model_validate(attachment._model), data
