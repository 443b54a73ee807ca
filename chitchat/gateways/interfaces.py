# chitchat/gateways/interfaces.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from chitchat.domain.enums import MessageType, ParticipantRole
from chitchat.infrastructure import models, schemas
from chitchat.infrastructure.security import SecurityService
from chitchat.infrastructure.uow import UoWModel


class IUserGateway(ABC):
    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_users_by_ids(self, user_ids: set[int]) -> dict[int, models.User]:
        pass

    @abstractmethod
    async def create_user(
        self, user: schemas.UserCreate, security_service: SecurityService
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def update_user(
        self,
        user: UoWModel,
        user_update: schemas.UserUpdate,
        security_service: SecurityService,
    ) -> UoWModel:
        pass

    @abstractmethod
    async def search_users(self, query: str, current_user_id: int) -> List[UoWModel]:
        pass


class IRoomGateway(ABC):
    @abstractmethod
    async def get_room(self, room_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_direct_room(self, user_a: int, user_b: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def create_room(
        self,
        name: str,
        is_group: bool,
        creator_id: int,
        description: Optional[str] = None,
    ) -> UoWModel:
        pass

    @abstractmethod
    async def create_direct_room(self, user_a: int, user_b: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_participant(self, room_id: int, user_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_active_participant(
        self, room_id: int, user_id: int
    ) -> Optional[models.Participant]:
        pass

    @abstractmethod
    async def add_participant(
        self, room_id: int, user_id: int, role: ParticipantRole
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def participants_of(
        self, room_id: int
    ) -> List[tuple[models.Participant, models.User]]:
        pass

    @abstractmethod
    async def rooms_for_user(self, user_id: int) -> List[tuple[models.Room, int]]:
        pass


class IMessageGateway(ABC):
    @abstractmethod
    async def get_message(self, message_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def create_message(
        self,
        room_id: int,
        sender_id: int,
        content: str,
        message_type: MessageType,
        sent_at: datetime,
    ) -> UoWModel:
        pass

    @abstractmethod
    async def get_page(
        self, room_id: int, skip: int = 0, limit: int = 50
    ) -> List[models.Message]:
        pass

    @abstractmethod
    async def search_in_room(
        self, room_id: int, query: str, skip: int = 0, limit: int = 50
    ) -> List[models.Message]:
        pass

    @abstractmethod
    async def search_across_user_rooms(
        self, user_id: int, query: str, skip: int = 0, limit: int = 50
    ) -> List[tuple[models.Message, str]]:
        pass

    @abstractmethod
    async def create_attachment(
        self,
        message_id: int,
        file_name: str,
        file_handle: str,
        file_type: Optional[str],
        file_size: int,
    ) -> UoWModel:
        pass

    @abstractmethod
    async def attachments_of(self, message_id: int) -> List[models.MessageAttachment]:
        pass

    @abstractmethod
    async def get_attachment(self, attachment_id: int) -> Optional[UoWModel]:
        pass


class IContactGateway(ABC):
    @abstractmethod
    async def get_contact(self, contact_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_directed(self, user_id: int, friend_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def any_active_between(self, user_id: int, other_id: int) -> bool:
        pass

    @abstractmethod
    async def create_request(self, sender_id: int, recipient_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def upsert_accepted(self, user_id: int, friend_id: int) -> UoWModel:
        pass

    @abstractmethod
    async def delete_contact(self, contact: UoWModel) -> None:
        pass

    @abstractmethod
    async def friends_of(self, user_id: int) -> List[models.User]:
        pass

    @abstractmethod
    async def pending_for(
        self, user_id: int
    ) -> List[tuple[models.Contact, models.User]]:
        pass
