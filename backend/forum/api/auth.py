"""Session lifecycle endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from forum.api.deps import get_users_service
from forum.domain.users_service import UsersService
from forum.infra.auth import AuthenticatedUser, get_current_user
from forum.schemas import dto

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=dto.AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
	payload: dto.RegisterRequest,
	service: UsersService = Depends(get_users_service),
) -> dto.AuthResponse:
	return await service.register(payload)


@router.post("/login", response_model=dto.AuthResponse)
async def login(
	payload: dto.LoginRequest,
	service: UsersService = Depends(get_users_service),
) -> dto.AuthResponse:
	return await service.login(payload)


@router.get("/me", response_model=dto.CurrentUserResponse)
async def me(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: UsersService = Depends(get_users_service),
) -> dto.CurrentUserResponse:
	return await service.me(auth_user)


@router.post("/refresh-token", response_model=dto.TokenResponse)
async def refresh_token(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: UsersService = Depends(get_users_service),
) -> dto.TokenResponse:
	return await service.refresh_token(auth_user)


__all__ = ["router"]
