"""Topic lifecycle: creation with its first post, listings, edits and cascade delete."""

from __future__ import annotations

from forum.domain import repo as repo_module
from forum.domain.exceptions import ForbiddenError, NotFoundError
from forum.domain.lookup import ById, parse_id, parse_lookup
from forum.domain.models import Topic
from forum.domain.pagination import PageInfo, page_info, page_request
from forum.domain.roles import Role
from forum.domain.slugs import topic_slug
from forum.domain.views import ViewBuilder
from forum.infra.auth import AuthenticatedUser
from forum.obs import logging as obs_logging
from forum.obs import metrics as obs_metrics
from forum.schemas import dto
from forum.settings import Settings, settings as default_settings

logger = obs_logging.get_logger("forum.topics")


def _pagination(info: PageInfo) -> dto.PaginationResponse:
	return dto.PaginationResponse(
		current_page=info.current_page,
		total_pages=info.total_pages,
		total_items=info.total_items,
		has_more=info.has_more,
	)


class TopicsService:
	def __init__(
		self,
		repository: repo_module.ForumRepository,
		views: ViewBuilder | None = None,
		*,
		settings: Settings | None = None,
	) -> None:
		self.repo = repository
		self.views = views or ViewBuilder(repository)
		self.settings = settings or default_settings

	def _page(self, page: int | None, limit: int | None):
		return page_request(
			page,
			limit,
			default_limit=self.settings.default_page_size,
			max_limit=self.settings.max_page_size,
		)

	async def _require_topic(self, topic_id: str) -> Topic:
		topic = await self.repo.get_topic(parse_id(topic_id, "Invalid topic ID"))
		if topic is None:
			raise NotFoundError("Topic not found")
		return topic

	async def create_topic(self, author: AuthenticatedUser, payload: dto.TopicCreateRequest) -> dto.TopicCreateResponse:
		"""Insert the topic and its first post, removing the topic if the post insert fails."""
		category_id = parse_id(payload.category_id, "Invalid category ID")
		if await self.repo.get_category(category_id) is None:
			raise NotFoundError("Category not found")
		topic = await self.repo.create_topic(
			title=payload.title,
			content=payload.content,
			slug=topic_slug(payload.title),
			category_id=category_id,
			author_id=author.id,
			tags=payload.tags,
		)
		try:
			post = await self.repo.create_post(topic_id=topic.id, author_id=author.id, content=payload.content)
		except Exception:
			logger.exception("topic_first_post_failed", extra={"topic": str(topic.id)})
			await self.repo.delete_topic(topic.id)
			raise
		topic = await self.repo.set_topic_last_post(topic.id, post.id, post.created_at) or topic
		obs_metrics.inc_topic_created()
		return dto.TopicCreateResponse(
			message="Topic created successfully",
			topic=await self.views.topic(topic),
			post=await self.views.post(post),
		)

	async def list_latest(self, *, page: int | None = 1, limit: int | None = None) -> dto.TopicListResponse:
		request = self._page(page, limit)
		topics, total = await self.repo.list_latest_topics(offset=request.offset, limit=request.limit)
		return dto.TopicListResponse(
			items=await self.views.topic_items(topics),
			pagination=_pagination(page_info(request, total)),
		)

	async def list_by_category(self, category_id: str, *, page: int | None = 1, limit: int | None = None) -> dto.TopicListResponse:
		target_id = parse_id(category_id, "Invalid category ID")
		if await self.repo.get_category(target_id) is None:
			raise NotFoundError("Category not found")
		request = self._page(page, limit)
		topics, total = await self.repo.list_category_topics(target_id, offset=request.offset, limit=request.limit)
		return dto.TopicListResponse(
			items=await self.views.topic_items(topics),
			pagination=_pagination(page_info(request, total)),
		)

	async def get_topic(self, id_or_slug: str) -> dto.TopicDetailResponse:
		"""Fetch a topic for display, counting the view."""
		lookup = parse_lookup(id_or_slug)
		if isinstance(lookup, ById):
			topic = await self.repo.get_topic(lookup.id)
		else:
			topic = await self.repo.get_topic_by_slug(lookup.slug)
		if topic is None:
			raise NotFoundError("Topic not found")
		topic = await self.repo.increment_topic_views(topic.id) or topic
		detail = dto.TopicDetail.model_validate(topic)
		detail.author = await self.views.author(topic.author_id)
		category = await self.repo.get_category(topic.category_id)
		detail.category = dto.CategoryResponse.model_validate(category) if category else None
		detail.posts_count = await self.repo.count_topic_posts(topic.id)
		return dto.TopicDetailResponse(topic=detail)

	async def update_topic(self, actor: AuthenticatedUser, topic_id: str, payload: dto.TopicUpdateRequest) -> dto.TopicMutationResponse:
		topic = await self._require_topic(topic_id)
		is_author = topic.author_id == actor.id
		is_moderator = actor.has_role(Role.TEACHER)
		if not is_author and not is_moderator:
			raise ForbiddenError("You do not have permission to update this topic")
		changes: dict[str, object] = {}
		if payload.title:
			changes["title"] = payload.title
			changes["slug"] = topic_slug(payload.title)
		if payload.content:
			changes["content"] = payload.content
		if payload.tags is not None:
			changes["tags"] = payload.tags
		if is_moderator:
			if payload.is_pinned is not None:
				changes["is_pinned"] = payload.is_pinned
			if payload.is_locked is not None:
				changes["is_locked"] = payload.is_locked
		updated = await self.repo.update_topic(topic.id, **changes)
		if updated is None:
			raise NotFoundError("Topic not found")
		if "content" in changes:
			first = await self.repo.get_first_post(topic.id)
			if first is not None:
				await self.repo.update_post_content(first.id, payload.content, mark_edited=False)
		return dto.TopicMutationResponse(message="Topic updated successfully", topic=await self.views.topic(updated))

	async def delete_topic(self, actor: AuthenticatedUser, topic_id: str) -> dto.MessageResponse:
		topic = await self._require_topic(topic_id)
		if topic.author_id != actor.id and not actor.has_role(Role.TEACHER):
			raise ForbiddenError("You do not have permission to delete this topic")
		await self.repo.delete_topic(topic.id)
		logger.info("topic_deleted", extra={"topic": str(topic.id)})
		return dto.MessageResponse(message="Topic and all its posts deleted successfully")
