# chitchat/api/friends.py
from fastapi import APIRouter, Depends

from chitchat.api.dependencies import get_current_active_user, get_friend_interactor
from chitchat.infrastructure import schemas
from chitchat.interactors.friend_interactor import FriendInteractor

router = APIRouter()


@router.get("/", response_model=list[schemas.UserBasic])
async def read_friends(
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await friend_interactor.list_friends(current_user.id)


@router.post("/requests", response_model=schemas.Contact)
async def send_friend_request(
    request: schemas.FriendRequestCreate,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await friend_interactor.send_request(current_user.id, request.email)


@router.get("/requests", response_model=list[schemas.FriendRequest])
async def read_friend_requests(
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await friend_interactor.pending_requests(current_user.id)


@router.put("/requests/{request_id}/accept", response_model=schemas.Contact)
async def accept_friend_request(
    request_id: int,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await friend_interactor.accept(current_user.id, request_id)


@router.put("/requests/{request_id}/reject", status_code=204)
async def reject_friend_request(
    request_id: int,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    await friend_interactor.reject(current_user.id, request_id)


@router.get("/status/{other_id}", response_model=schemas.FriendshipStatusResponse)
async def read_friendship_status(
    other_id: int,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await friend_interactor.status_between(current_user.id, other_id)


@router.delete("/{friend_id}", status_code=204)
async def remove_friend(
    friend_id: int,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    await friend_interactor.remove_friend(current_user.id, friend_id)
