# chitchat/api/auth.py
import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from chitchat.api.dependencies import (
    get_config,
    get_security_service,
    get_user_interactor,
)
from chitchat.config import AppConfig
from chitchat.infrastructure import schemas
from chitchat.infrastructure.security import SecurityService
from chitchat.interactors.user_interactor import UserInteractor

router = APIRouter()


@router.post("/login", response_model=schemas.TokenResponse)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    user_interactor: UserInteractor = Depends(get_user_interactor),
    config: AppConfig = Depends(get_config),
    security_service: SecurityService = Depends(get_security_service),
):
    user = await user_interactor.verify_user_password(
        form_data.username, form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token_expires = datetime.timedelta(
        minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    access_token, access_expire = security_service.create_access_token(
        user.id, expires_delta=access_token_expires
    )
    return schemas.TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_at=access_expire,
        user_id=user.id,
    )


@router.post("/register", response_model=schemas.User)
async def register_user(
    user: schemas.UserCreate,
    user_interactor: UserInteractor = Depends(get_user_interactor),
):
    return await user_interactor.create_user(user)
