"""Topic endpoints.

Static paths (``/latest``, ``/category/{id}``) are declared before the
``/{id_or_slug}`` catch-all.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from forum.api.deps import get_topics_service
from forum.domain.topics_service import TopicsService
from forum.infra.auth import AuthenticatedUser, get_current_user
from forum.schemas import dto

router = APIRouter(prefix="/api/topics", tags=["topics"])


@router.get("/latest", response_model=dto.TopicListResponse)
async def latest_topics(
	page: int = Query(default=1),
	limit: int | None = Query(default=None),
	service: TopicsService = Depends(get_topics_service),
) -> dto.TopicListResponse:
	return await service.list_latest(page=page, limit=limit)


@router.get("/category/{category_id}", response_model=dto.TopicListResponse)
async def topics_by_category(
	category_id: str,
	page: int = Query(default=1),
	limit: int | None = Query(default=None),
	service: TopicsService = Depends(get_topics_service),
) -> dto.TopicListResponse:
	return await service.list_by_category(category_id, page=page, limit=limit)


@router.get("/{id_or_slug}", response_model=dto.TopicDetailResponse)
async def get_topic(
	id_or_slug: str,
	service: TopicsService = Depends(get_topics_service),
) -> dto.TopicDetailResponse:
	return await service.get_topic(id_or_slug)


@router.post("", response_model=dto.TopicCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_topic(
	payload: dto.TopicCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: TopicsService = Depends(get_topics_service),
) -> dto.TopicCreateResponse:
	return await service.create_topic(auth_user, payload)


@router.put("/{topic_id}", response_model=dto.TopicMutationResponse)
async def update_topic(
	topic_id: str,
	payload: dto.TopicUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: TopicsService = Depends(get_topics_service),
) -> dto.TopicMutationResponse:
	return await service.update_topic(auth_user, topic_id, payload)


@router.delete("/{topic_id}", response_model=dto.MessageResponse)
async def delete_topic(
	topic_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: TopicsService = Depends(get_topics_service),
) -> dto.MessageResponse:
	return await service.delete_topic(auth_user, topic_id)


__all__ = ["router"]
