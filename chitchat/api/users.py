# chitchat/api/users.py
from fastapi import APIRouter, Depends

from chitchat.api.dependencies import get_current_active_user, get_user_interactor
from chitchat.infrastructure import schemas
from chitchat.interactors.user_interactor import UserInteractor

router = APIRouter()


@router.get("/me", response_model=schemas.User)
async def read_users_me(current_user: schemas.User = Depends(get_current_active_user)):
    return current_user


@router.put("/me", response_model=schemas.User)
async def update_user(
    user_update: schemas.UserUpdate,
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await user_interactor.update_user(current_user.id, user_update)


@router.delete("/me", status_code=204)
async def delete_user(
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    await user_interactor.deactivate_user(current_user.id)


@router.get("/search", response_model=list[schemas.UserBasic])
async def search_users(
    query: str,
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await user_interactor.search_users(query, current_user.id)
