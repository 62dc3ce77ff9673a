"""Post endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from forum.api.deps import get_posts_service
from forum.domain.posts_service import PostsService
from forum.infra.auth import AuthenticatedUser, get_current_user
from forum.schemas import dto

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get("/topic/{topic_id}", response_model=dto.PostListResponse)
async def posts_by_topic(
	topic_id: str,
	page: int = Query(default=1),
	limit: int | None = Query(default=None),
	service: PostsService = Depends(get_posts_service),
) -> dto.PostListResponse:
	return await service.list_by_topic(topic_id, page=page, limit=limit)


@router.post("", response_model=dto.PostMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
	payload: dto.PostCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> dto.PostMutationResponse:
	return await service.create_post(auth_user, payload)


@router.put("/{post_id}", response_model=dto.PostMutationResponse)
async def update_post(
	post_id: str,
	payload: dto.PostUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> dto.PostMutationResponse:
	return await service.update_post(auth_user, post_id, payload)


@router.delete("/{post_id}", response_model=dto.MessageResponse)
async def delete_post(
	post_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> dto.MessageResponse:
	return await service.delete_post(auth_user, post_id)


@router.post("/{post_id}/like", response_model=dto.LikeResponse)
async def toggle_like(
	post_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: PostsService = Depends(get_posts_service),
) -> dto.LikeResponse:
	return await service.toggle_like(auth_user, post_id)


__all__ = ["router"]
