from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.core.config import settings
from app.core.dependencies import get_current_user, get_user_repository, TOKEN_COOKIE
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.schemas.auth import UserLogin, UserRegister, AuthResponse, RefreshTokenRequest
from app.schemas.user import UserRead
from app.services.auth_service import auth_service

router = APIRouter(tags=["auth"])


def _set_token_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=auth_service.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user: UserRegister,
    response: Response,
    repo: UserRepository = Depends(get_user_repository),
):
    """Register a trainer or client and log them in."""
    new_user = await auth_service.register_user(repo, user)
    access_token, refresh_token = await auth_service.issue_tokens(repo, new_user)
    _set_token_cookie(response, access_token)
    return AuthResponse(token=access_token, refresh_token=refresh_token, user=UserRead.model_validate(new_user))


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: UserLogin,
    response: Response,
    repo: UserRepository = Depends(get_user_repository),
):
    user = await auth_service.authenticate_user(repo, credentials)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Credenciales inválidas",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Usuario inactivo")

    access_token, refresh_token = await auth_service.issue_tokens(repo, user)
    _set_token_cookie(response, access_token)
    return AuthResponse(token=access_token, refresh_token=refresh_token, user=UserRead.model_validate(user))


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    request: RefreshTokenRequest,
    response: Response,
    repo: UserRepository = Depends(get_user_repository),
):
    rotated = await auth_service.rotate_refresh_token(repo, request.refresh_token)
    if rotated is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token inválido o expirado",
        )
    user, access_token, refresh_token = rotated
    _set_token_cookie(response, access_token)
    return AuthResponse(token=access_token, refresh_token=refresh_token, user=UserRead.model_validate(user))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Optional[RefreshTokenRequest] = None,
    repo: UserRepository = Depends(get_user_repository),
):
    if request is not None:
        await auth_service.logout_user(repo, request.refresh_token)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(TOKEN_COOKIE)
    return response


@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
