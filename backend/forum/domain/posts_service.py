"""Replies: creation with notification fan-out, edits, tombstoning deletes and likes."""

from __future__ import annotations

from forum.domain import repo as repo_module
from forum.domain.exceptions import ForbiddenError, NotFoundError
from forum.domain.lookup import parse_id
from forum.domain.models import Post, Topic
from forum.domain.notifications_service import NotificationService, NotifyResult
from forum.domain.pagination import page_info, page_request
from forum.domain.roles import Role
from forum.domain.slugs import extract_mentions
from forum.domain.views import ViewBuilder
from forum.infra.auth import AuthenticatedUser
from forum.obs import logging as obs_logging
from forum.obs import metrics as obs_metrics
from forum.schemas import dto
from forum.settings import Settings, settings as default_settings

logger = obs_logging.get_logger("forum.posts")

TOMBSTONE = "[This post has been deleted]"


class PostsService:
	def __init__(
		self,
		repository: repo_module.ForumRepository,
		notifications: NotificationService,
		views: ViewBuilder | None = None,
		*,
		settings: Settings | None = None,
	) -> None:
		self.repo = repository
		self.notifications = notifications
		self.views = views or ViewBuilder(repository)
		self.settings = settings or default_settings

	async def _require_post(self, post_id: str) -> Post:
		post = await self.repo.get_post(parse_id(post_id, "Invalid post ID"))
		if post is None:
			raise NotFoundError("Post not found")
		return post

	@staticmethod
	def _log_outcome(result: NotifyResult, **context: object) -> None:
		if not result.ok:
			logger.warning("notification_side_effect_failed", extra={"reason": result.reason, **context})

	async def fan_out(self, topic: Topic, post: Post, *, reply_target: Post | None) -> list[NotifyResult]:
		"""Emit reply, topic-reply and mention notifications for a new post.

		Every call is best-effort; failures are logged and returned, never raised.
		"""
		results: list[NotifyResult] = []
		if reply_target is not None:
			results.append(await self.notifications.notify_reply(reply_target.id, post.id))
		if topic.author_id != post.author_id:
			results.append(await self.notifications.notify_topic_reply(topic.id, post.id, post.author_id))
		for username in extract_mentions(post.content):
			results.append(await self.notifications.notify_mention(username, post.id))
		for result in results:
			self._log_outcome(result, post=str(post.id))
		return results

	async def create_post(self, author: AuthenticatedUser, payload: dto.PostCreateRequest) -> dto.PostMutationResponse:
		topic_id = parse_id(payload.topic_id, "Invalid topic ID")
		topic = await self.repo.get_topic(topic_id)
		if topic is None:
			raise NotFoundError("Topic not found")
		if topic.is_locked:
			raise ForbiddenError("This topic is locked and cannot be replied to")
		reply_target: Post | None = None
		if payload.reply_to:
			reply_target = await self.repo.get_post(parse_id(payload.reply_to, "Invalid replyTo post ID"))
			if reply_target is None:
				raise NotFoundError("Reply to post not found")
		post = await self.repo.create_reply(
			topic_id=topic.id,
			author_id=author.id,
			content=payload.content,
			reply_to=reply_target.id if reply_target else None,
		)
		obs_metrics.inc_post_created()
		await self.fan_out(topic, post, reply_target=reply_target)
		return dto.PostMutationResponse(message="Post created successfully", post=await self.views.post_detail(post))

	async def list_by_topic(self, topic_id: str, *, page: int | None = 1, limit: int | None = None) -> dto.PostListResponse:
		target_id = parse_id(topic_id, "Invalid topic ID")
		if await self.repo.get_topic(target_id) is None:
			raise NotFoundError("Topic not found")
		request = page_request(
			page,
			limit,
			default_limit=self.settings.default_page_size,
			max_limit=self.settings.max_page_size,
		)
		posts, total = await self.repo.list_topic_posts(target_id, offset=request.offset, limit=request.limit)
		info = page_info(request, total)
		return dto.PostListResponse(
			items=await self.views.post_details(posts),
			pagination=dto.PaginationResponse(
				current_page=info.current_page,
				total_pages=info.total_pages,
				total_items=info.total_items,
				has_more=info.has_more,
			),
		)

	async def _authorize_change(self, actor: AuthenticatedUser, post: Post, verb: str) -> None:
		is_moderator = actor.has_role(Role.TEACHER)
		if post.author_id != actor.id and not is_moderator:
			raise ForbiddenError(f"You do not have permission to {verb} this post")
		topic = await self.repo.get_topic(post.topic_id)
		if topic is not None and topic.is_locked and not is_moderator:
			raise ForbiddenError(f"This topic is locked and posts cannot be {verb}d")

	async def update_post(self, actor: AuthenticatedUser, post_id: str, payload: dto.PostUpdateRequest) -> dto.PostMutationResponse:
		post = await self._require_post(post_id)
		await self._authorize_change(actor, post, "update")
		updated = await self.repo.update_post_content(post.id, payload.content)
		if updated is None:
			raise NotFoundError("Post not found")
		return dto.PostMutationResponse(message="Post updated successfully", post=await self.views.post_detail(updated))

	async def delete_post(self, actor: AuthenticatedUser, post_id: str) -> dto.MessageResponse:
		"""Delete a post, or tombstone it when other posts reply to it."""
		post = await self._require_post(post_id)
		await self._authorize_change(actor, post, "delete")
		if await self.repo.count_replies_to(post.id):
			await self.repo.update_post_content(post.id, TOMBSTONE)
			obs_metrics.inc_post_deleted("tombstone")
			return dto.MessageResponse(message="Post content removed but kept as reference for replies")
		await self.repo.delete_reply(post)
		obs_metrics.inc_post_deleted("hard")
		return dto.MessageResponse(message="Post deleted successfully")

	async def toggle_like(self, actor: AuthenticatedUser, post_id: str) -> dto.LikeResponse:
		post = await self._require_post(post_id)
		toggled = await self.repo.toggle_like(post.id, actor.id)
		if toggled is None:
			raise NotFoundError("Post not found")
		updated, liked = toggled
		obs_metrics.inc_like_toggle(liked)
		if liked:
			self._log_outcome(await self.notifications.notify_like(updated.id, actor.id), post=str(updated.id))
		return dto.LikeResponse(
			message="Post liked successfully" if liked else "Post unliked successfully",
			post=await self.views.post(updated),
			liked=liked,
		)
