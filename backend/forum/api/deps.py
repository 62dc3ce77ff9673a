"""Dependency accessors for services wired onto ``app.state``."""

from __future__ import annotations

from fastapi import Request

from forum.domain.categories_service import CategoriesService
from forum.domain.maintenance_service import MaintenanceService
from forum.domain.notifications_service import NotificationService
from forum.domain.posts_service import PostsService
from forum.domain.services import ForumServices
from forum.domain.topics_service import TopicsService
from forum.domain.users_service import UsersService


def get_services(request: Request) -> ForumServices:
	services = getattr(request.app.state, "services", None)
	if services is None:
		raise RuntimeError("services_not_initialised")
	return services


def get_users_service(request: Request) -> UsersService:
	return get_services(request).users


def get_categories_service(request: Request) -> CategoriesService:
	return get_services(request).categories


def get_topics_service(request: Request) -> TopicsService:
	return get_services(request).topics


def get_posts_service(request: Request) -> PostsService:
	return get_services(request).posts


def get_notification_service(request: Request) -> NotificationService:
	return get_services(request).notifications


def get_maintenance_service(request: Request) -> MaintenanceService:
	return get_services(request).maintenance
