# chitchat/interactors/friend_interactor.py
import logging

from chitchat.domain.enums import ContactStatus, FriendshipStatus
from chitchat.domain.exceptions import (
    ConflictError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from chitchat.gateways.interfaces import IContactGateway, IUserGateway
from chitchat.infrastructure import schemas
from chitchat.infrastructure.uow import UnitOfWork, UoWModel

logger = logging.getLogger("ChitChat.friends")


class FriendInteractor:
    """Friend requests and the symmetric friendship they turn into.

    A request is one directed PENDING row. Accepting it marks the row ACCEPTED
    and makes sure the reciprocal row exists and is ACCEPTED too, in the same
    transaction, so a friendship is always visible from both sides.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        contact_gateway: IContactGateway,
        user_gateway: IUserGateway,
    ):
        self.uow = uow
        self.contact_gateway = contact_gateway
        self.user_gateway = user_gateway

    async def send_request(self, sender_id: int, recipient_email: str) -> schemas.Contact:
        recipient = await self.user_gateway.get_by_email(recipient_email)
        if recipient is None or not recipient.is_active:
            raise NotFoundError(f"No user with email {recipient_email}")
        if recipient.id == sender_id:
            raise InvalidArgumentError("Cannot send a friend request to yourself")
        if await self.contact_gateway.any_active_between(sender_id, recipient.id):
            raise ConflictError("A request or friendship already exists")

        contact = await self.contact_gateway.create_request(sender_id, recipient.id)
        if contact is None:
            raise ConflictError("A request or friendship already exists")
        await self.uow.commit()
        logger.info(f"User {sender_id} sent a friend request to user {recipient.id}")
        return schemas.Contact.model_validate(contact._model)

    async def _pending_request_for(self, user_id: int, request_id: int) -> UoWModel:
        contact = await self.contact_gateway.get_contact(request_id)
        if contact is None:
            raise NotFoundError(f"Friend request {request_id} not found")
        if contact.friend_id != user_id:
            raise UnauthorizedError("This friend request is not addressed to you")
        if contact.status != ContactStatus.PENDING:
            raise InvalidStateError(f"Friend request {request_id} is not pending")
        return contact

    async def accept(self, user_id: int, request_id: int) -> schemas.Contact:
        contact = await self._pending_request_for(user_id, request_id)
        contact.status = ContactStatus.ACCEPTED
        await self.contact_gateway.upsert_accepted(user_id, contact.user_id)
        await self.uow.commit()
        logger.info(f"User {user_id} accepted friend request {request_id}")
        return schemas.Contact.model_validate(contact._model)

    async def reject(self, user_id: int, request_id: int) -> None:
        contact = await self._pending_request_for(user_id, request_id)
        await self.contact_gateway.delete_contact(contact)
        await self.uow.commit()
        logger.info(f"User {user_id} rejected friend request {request_id}")

    async def remove_friend(self, user_id: int, friend_id: int) -> None:
        removed = 0
        for owner, other in ((user_id, friend_id), (friend_id, user_id)):
            contact = await self.contact_gateway.get_directed(owner, other)
            if contact is not None:
                await self.contact_gateway.delete_contact(contact)
                removed += 1
        await self.uow.commit()
        if removed:
            logger.info(f"User {user_id} removed user {friend_id} from friends")

    async def list_friends(self, user_id: int) -> list[schemas.UserBasic]:
        friends = await self.contact_gateway.friends_of(user_id)
        return [schemas.UserBasic.model_validate(friend) for friend in friends]

    async def status_between(
        self, user_id: int, other_id: int
    ) -> schemas.FriendshipStatusResponse:
        outgoing = await self.contact_gateway.get_directed(user_id, other_id)
        incoming = await self.contact_gateway.get_directed(other_id, user_id)

        def has(contact, status: ContactStatus) -> bool:
            return contact is not None and contact.is_active and contact.status == status

        if has(outgoing, ContactStatus.ACCEPTED):
            status = FriendshipStatus.FRIENDS
        elif has(outgoing, ContactStatus.PENDING):
            status = FriendshipStatus.PENDING
        elif has(incoming, ContactStatus.PENDING):
            status = FriendshipStatus.RECEIVED
        else:
            status = FriendshipStatus.NONE
        return schemas.FriendshipStatusResponse(
            user_id=user_id, other_id=other_id, status=status
        )

    async def pending_requests(self, user_id: int) -> list[schemas.FriendRequest]:
        rows = await self.contact_gateway.pending_for(user_id)
        return [
            schemas.FriendRequest(
                id=contact.id,
                sender_id=contact.user_id,
                receiver_id=contact.friend_id,
                status=contact.status,
                created_at=contact.created_at,
                sender=schemas.UserBasic.model_validate(sender),
            )
            for contact, sender in rows
        ]
