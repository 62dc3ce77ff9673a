"""Category endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from forum.api.deps import get_categories_service
from forum.domain.categories_service import CategoriesService
from forum.domain.roles import Role
from forum.infra.auth import AuthenticatedUser, require_role
from forum.schemas import dto

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=List[dto.CategoryResponse])
async def list_categories(service: CategoriesService = Depends(get_categories_service)) -> list[dto.CategoryResponse]:
	return await service.list_categories()


@router.post("", response_model=dto.CategoryMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
	payload: dto.CategoryCreateRequest,
	actor: AuthenticatedUser = Depends(require_role(Role.TEACHER)),
	service: CategoriesService = Depends(get_categories_service),
) -> dto.CategoryMutationResponse:
	return await service.create_category(actor, payload)


@router.get("/{id_or_slug}", response_model=dto.CategoryDetailResponse)
async def get_category(
	id_or_slug: str,
	service: CategoriesService = Depends(get_categories_service),
) -> dto.CategoryDetailResponse:
	return await service.get_category(id_or_slug)


@router.put("/{category_id}", response_model=dto.CategoryMutationResponse)
async def update_category(
	category_id: str,
	payload: dto.CategoryUpdateRequest,
	_: AuthenticatedUser = Depends(require_role(Role.TEACHER)),
	service: CategoriesService = Depends(get_categories_service),
) -> dto.CategoryMutationResponse:
	return await service.update_category(category_id, payload)


@router.delete("/{category_id}", response_model=dto.MessageResponse)
async def delete_category(
	category_id: str,
	_: AuthenticatedUser = Depends(require_role(Role.TEACHER)),
	service: CategoriesService = Depends(get_categories_service),
) -> dto.MessageResponse:
	return await service.delete_category(category_id)


__all__ = ["router"]
