"""Notification feed and preference endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from forum.api.deps import get_notification_service
from forum.domain.exceptions import NotFoundError
from forum.domain.lookup import parse_id
from forum.domain.notifications_service import NotificationService
from forum.infra.auth import AuthenticatedUser, get_current_user
from forum.schemas import dto

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=dto.NotificationFeedResponse)
async def list_notifications(
	page: int = Query(default=1),
	limit: int = Query(default=10),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(get_notification_service),
) -> dto.NotificationFeedResponse:
	return await service.get_notifications(auth_user.id, page=page, limit=limit)


@router.post("/mark-read", response_model=dto.MarkReadResponse)
async def mark_read(
	payload: dto.MarkReadRequest | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(get_notification_service),
) -> dto.MarkReadResponse:
	ids = payload.notification_ids if payload else None
	modified = await service.mark_as_read(auth_user.id, ids)
	return dto.MarkReadResponse(message="Notifications marked as read", modified_count=modified)


@router.get("/settings", response_model=dto.NotificationSettingsResponse)
async def get_settings(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(get_notification_service),
) -> dto.NotificationSettingsResponse:
	settings = await service.get_settings(auth_user.id)
	return dto.NotificationSettingsResponse.model_validate(settings.model_dump())


@router.put("/settings", response_model=dto.NotificationSettingsResponse)
async def update_settings(
	payload: dto.NotificationSettingsUpdate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(get_notification_service),
) -> dto.NotificationSettingsResponse:
	settings = await service.update_settings(auth_user.id, payload.model_dump(exclude_none=True))
	return dto.NotificationSettingsResponse.model_validate(settings.model_dump())


@router.delete("", response_model=dto.DeleteAllResponse)
async def delete_all(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(get_notification_service),
) -> dto.DeleteAllResponse:
	deleted = await service.delete_all_notifications(auth_user.id)
	return dto.DeleteAllResponse(message="All notifications deleted", deleted_count=deleted)


@router.delete("/{notification_id}", response_model=dto.MessageResponse)
async def delete_one(
	notification_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(get_notification_service),
) -> dto.MessageResponse:
	deleted = await service.delete_notification(auth_user.id, parse_id(notification_id, "Invalid notification ID"))
	if not deleted:
		raise NotFoundError("Notification not found")
	return dto.MessageResponse(message="Notification deleted")


__all__ = ["router"]
