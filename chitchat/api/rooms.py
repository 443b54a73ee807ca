# chitchat/api/rooms.py
from fastapi import APIRouter, Depends, Query

from chitchat.api.dependencies import (
    get_current_active_user,
    get_message_interactor,
    get_room_interactor,
)
from chitchat.infrastructure import schemas
from chitchat.interactors.message_interactor import MessageInteractor
from chitchat.interactors.room_interactor import RoomInteractor

router = APIRouter()


@router.get("/", response_model=list[schemas.RoomSummary])
async def read_rooms(
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await room_interactor.rooms_for_user(current_user.id)


@router.post("/", response_model=schemas.Room)
async def create_room(
    room: schemas.RoomCreate,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await room_interactor.create_room(current_user.id, room)


@router.post("/direct/{other_user_id}", response_model=schemas.Room)
async def open_direct_room(
    other_user_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await room_interactor.find_or_create_direct_room(
        current_user.id, other_user_id
    )


@router.get("/{room_id}", response_model=schemas.RoomDetails)
async def read_room(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await room_interactor.room_details(current_user.id, room_id)


@router.post("/{room_id}/participants", response_model=schemas.ParticipantInfo)
async def add_participant(
    room_id: int,
    participant: schemas.ParticipantAdd,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await room_interactor.add_participant(
        current_user.id, room_id, participant.user_id
    )


@router.delete("/{room_id}/participants/{user_id}", status_code=204)
async def remove_participant(
    room_id: int,
    user_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    await room_interactor.remove_participant(current_user.id, room_id, user_id)


@router.post("/{room_id}/leave", status_code=204)
async def leave_room(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    await room_interactor.leave_room(current_user.id, room_id)


@router.post("/{room_id}/messages", response_model=schemas.Message)
async def send_message(
    room_id: int,
    message: schemas.MessageCreate,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await message_interactor.send(
        current_user.id, room_id, message.content, message.message_type
    )


@router.get("/{room_id}/messages", response_model=list[schemas.Message])
async def read_messages(
    room_id: int,
    page: int = 0,
    size: int = 50,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await message_interactor.page(room_id, current_user.id, page, size)


@router.get("/{room_id}/messages/search", response_model=list[schemas.Message])
async def search_room_messages(
    room_id: int,
    query: str = Query(..., description="Text to look for in message content"),
    page: int = 0,
    size: int = 50,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await message_interactor.search(
        room_id, current_user.id, query, page, size
    )
