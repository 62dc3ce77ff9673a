"""Service container wired once per application."""

from __future__ import annotations

from dataclasses import dataclass

from forum.domain import repo as repo_module
from forum.domain.categories_service import CategoriesService
from forum.domain.maintenance_service import MaintenanceService
from forum.domain.notifications_service import NotificationService
from forum.domain.posts_service import PostsService
from forum.domain.topics_service import TopicsService
from forum.domain.users_service import UsersService
from forum.domain.views import ViewBuilder
from forum.settings import Settings, settings as default_settings


@dataclass(slots=True)
class ForumServices:
	repository: repo_module.ForumRepository
	notifications: NotificationService
	users: UsersService
	categories: CategoriesService
	topics: TopicsService
	posts: PostsService
	maintenance: MaintenanceService


def build_services(repository: repo_module.ForumRepository, *, settings: Settings | None = None) -> ForumServices:
	cfg = settings or default_settings
	views = ViewBuilder(repository)
	notifications = NotificationService(repository)
	return ForumServices(
		repository=repository,
		notifications=notifications,
		users=UsersService(repository, notifications, settings=cfg),
		categories=CategoriesService(repository, views),
		topics=TopicsService(repository, views, settings=cfg),
		posts=PostsService(repository, notifications, views, settings=cfg),
		maintenance=MaintenanceService(repository),
	)
