"""User directory, profile and role endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from forum.api.deps import get_users_service
from forum.domain.roles import Role
from forum.domain.users_service import UsersService
from forum.infra.auth import AuthenticatedUser, get_current_user, require_role
from forum.schemas import dto

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=dto.UserListResponse)
async def list_users(
	_: AuthenticatedUser = Depends(require_role(Role.ADMIN)),
	service: UsersService = Depends(get_users_service),
) -> dto.UserListResponse:
	return await service.list_users()


@router.get("/public", response_model=dto.PublicUserListResponse)
async def list_public_users(
	page: int = Query(default=1),
	limit: int | None = Query(default=None),
	service: UsersService = Depends(get_users_service),
) -> dto.PublicUserListResponse:
	return await service.list_public_users(page=page, limit=limit)


@router.get("/profile", response_model=dto.UserResponse)
async def get_profile(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: UsersService = Depends(get_users_service),
) -> dto.UserResponse:
	return await service.get_profile(auth_user)


@router.put("/profile", response_model=dto.ProfileResponse)
async def update_profile(
	payload: dto.ProfileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: UsersService = Depends(get_users_service),
) -> dto.ProfileResponse:
	return await service.update_profile(auth_user, payload)


@router.get("/profile/{id_or_username}", response_model=dto.PublicUserResponse)
async def get_public_profile(
	id_or_username: str,
	service: UsersService = Depends(get_users_service),
) -> dto.PublicUserResponse:
	return await service.get_public_profile(id_or_username)


@router.put("/password", response_model=dto.MessageResponse)
async def change_password(
	payload: dto.PasswordChangeRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: UsersService = Depends(get_users_service),
) -> dto.MessageResponse:
	return await service.change_password(auth_user, payload)


@router.put("/{user_id}/role", response_model=dto.RoleUpdateResponse)
async def update_role(
	user_id: str,
	payload: dto.RoleUpdateRequest,
	admin: AuthenticatedUser = Depends(require_role(Role.ADMIN)),
	service: UsersService = Depends(get_users_service),
) -> dto.RoleUpdateResponse:
	return await service.update_role(admin, user_id, payload.role)


__all__ = ["router"]
