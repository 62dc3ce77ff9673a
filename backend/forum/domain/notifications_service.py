"""Notification pipeline: derives notifications from content actions and serves feeds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Optional, Sequence
from uuid import UUID

from forum.domain import repo as repo_module
from forum.domain.exceptions import NotFoundError
from forum.domain.models import Notification, NotificationSettings, NotificationType
from forum.domain.pagination import page_info, page_request
from forum.obs import logging as obs_logging
from forum.obs import metrics as obs_metrics
from forum.schemas import dto

logger = obs_logging.get_logger("forum.notifications")

CREATED = "created"
SKIPPED = "skipped"
FAILED = "failed"


def post_link(slug: str, post_id: UUID) -> str:
	return f"/topics/{slug}#post-{post_id}"


@dataclass(slots=True)
class NotifyResult:
	"""Outcome of a best-effort notification side effect.

	Callers inspect ``failed`` to log the error and carry on; the primary
	action never sees the exception.
	"""

	status: str
	notification: Notification | None = None
	reason: str | None = None
	error: Exception | None = None

	@classmethod
	def created(cls, notification: Notification) -> "NotifyResult":
		return cls(CREATED, notification=notification)

	@classmethod
	def skipped(cls, reason: str) -> "NotifyResult":
		return cls(SKIPPED, reason=reason)

	@classmethod
	def failed(cls, error: Exception) -> "NotifyResult":
		return cls(FAILED, reason=str(error), error=error)

	@property
	def ok(self) -> bool:
		return self.status != FAILED


class NotificationService:
	"""Persists notifications and answers feed queries for their recipients."""

	def __init__(self, repository: repo_module.ForumRepository) -> None:
		self.repo = repository

	# ------------------------------------------------------------------
	# Insertion

	async def create_notification(
		self,
		*,
		user_id: UUID,
		actor_id: UUID | None,
		type: NotificationType,
		title: str,
		message: str,
		target_url: str | None = None,
		topic_id: UUID | None = None,
		post_id: UUID | None = None,
	) -> Notification | None:
		"""Insert a notification directly, without consulting preferences.

		Returns None when the actor is the recipient.
		"""
		if actor_id is not None and actor_id == user_id:
			return None
		return await self.repo.insert_notification(
			user_id=user_id,
			actor_id=actor_id,
			type=type,
			title=title,
			message=message,
			target_url=target_url,
			topic_id=topic_id,
			post_id=post_id,
		)

	async def _deliver(
		self,
		*,
		user_id: UUID,
		actor_id: UUID | None,
		type: NotificationType,
		title: str,
		message: str,
		target_url: str | None = None,
		topic_id: UUID | None = None,
		post_id: UUID | None = None,
	) -> NotifyResult:
		if actor_id is not None and actor_id == user_id:
			return NotifyResult.skipped("self")
		settings = await self.get_settings(user_id)
		if not settings.allows(type):
			return NotifyResult.skipped("preference")
		notification = await self.create_notification(
			user_id=user_id,
			actor_id=actor_id,
			type=type,
			title=title,
			message=message,
			target_url=target_url,
			topic_id=topic_id,
			post_id=post_id,
		)
		if notification is None:
			return NotifyResult.skipped("self")
		return NotifyResult.created(notification)

	async def _fail_soft(self, type: NotificationType, pending: Awaitable[NotifyResult]) -> NotifyResult:
		try:
			result = await pending
		except Exception as exc:
			logger.warning("notification_failed", exc_info=True, extra={"type": type.value})
			result = NotifyResult.failed(exc)
		obs_metrics.inc_notification(type.value, result.status)
		return result

	# ------------------------------------------------------------------
	# Fan-out sources

	async def notify_reply(self, original_post_id: UUID, reply_post_id: UUID) -> NotifyResult:
		return await self._fail_soft(NotificationType.REPLY, self._reply(original_post_id, reply_post_id))

	async def _reply(self, original_post_id: UUID, reply_post_id: UUID) -> NotifyResult:
		reply = await self.repo.get_post(reply_post_id)
		original = await self.repo.get_post(original_post_id)
		if reply is None or original is None:
			return NotifyResult.skipped("missing_post")
		if reply.author_id == original.author_id:
			return NotifyResult.skipped("self")
		topic = await self.repo.get_topic(original.topic_id)
		replier = await self.repo.get_user(reply.author_id)
		if topic is None or replier is None:
			return NotifyResult.skipped("missing_context")
		return await self._deliver(
			user_id=original.author_id,
			actor_id=reply.author_id,
			type=NotificationType.REPLY,
			title="New reply",
			message=f'{replier.username} replied to your post in "{topic.title}"',
			target_url=post_link(topic.slug, reply.id),
			topic_id=topic.id,
			post_id=reply.id,
		)

	async def notify_mention(self, username: str, post_id: UUID) -> NotifyResult:
		return await self._fail_soft(NotificationType.MENTION, self._mention(username, post_id))

	async def _mention(self, username: str, post_id: UUID) -> NotifyResult:
		mentioned = await self.repo.get_user_by_username(username)
		if mentioned is None:
			return NotifyResult.skipped("unknown_user")
		post = await self.repo.get_post(post_id)
		if post is None:
			return NotifyResult.skipped("missing_post")
		if post.author_id == mentioned.id:
			return NotifyResult.skipped("self")
		topic = await self.repo.get_topic(post.topic_id)
		mentioner = await self.repo.get_user(post.author_id)
		if topic is None or mentioner is None:
			return NotifyResult.skipped("missing_context")
		return await self._deliver(
			user_id=mentioned.id,
			actor_id=post.author_id,
			type=NotificationType.MENTION,
			title="You were mentioned",
			message=f'{mentioner.username} mentioned you in "{topic.title}"',
			target_url=post_link(topic.slug, post.id),
			topic_id=topic.id,
			post_id=post.id,
		)

	async def notify_like(self, post_id: UUID, liker_id: UUID) -> NotifyResult:
		return await self._fail_soft(NotificationType.LIKE, self._like(post_id, liker_id))

	async def _like(self, post_id: UUID, liker_id: UUID) -> NotifyResult:
		post = await self.repo.get_post(post_id)
		if post is None:
			return NotifyResult.skipped("missing_post")
		if post.author_id == liker_id:
			return NotifyResult.skipped("self")
		topic = await self.repo.get_topic(post.topic_id)
		liker = await self.repo.get_user(liker_id)
		if topic is None or liker is None:
			return NotifyResult.skipped("missing_context")
		return await self._deliver(
			user_id=post.author_id,
			actor_id=liker_id,
			type=NotificationType.LIKE,
			title="New like",
			message=f'{liker.username} liked your post in "{topic.title}"',
			target_url=post_link(topic.slug, post.id),
			topic_id=topic.id,
			post_id=post.id,
		)

	async def notify_topic_reply(self, topic_id: UUID, post_id: UUID, replier_id: UUID) -> NotifyResult:
		return await self._fail_soft(NotificationType.TOPIC_REPLY, self._topic_reply(topic_id, post_id, replier_id))

	async def _topic_reply(self, topic_id: UUID, post_id: UUID, replier_id: UUID) -> NotifyResult:
		topic = await self.repo.get_topic(topic_id)
		if topic is None:
			return NotifyResult.skipped("missing_topic")
		if topic.author_id == replier_id:
			return NotifyResult.skipped("self")
		replier = await self.repo.get_user(replier_id)
		if replier is None:
			return NotifyResult.skipped("missing_context")
		return await self._deliver(
			user_id=topic.author_id,
			actor_id=replier_id,
			type=NotificationType.TOPIC_REPLY,
			title="New reply to your topic",
			message=f'{replier.username} replied to your topic "{topic.title}"',
			target_url=post_link(topic.slug, post_id),
			topic_id=topic.id,
			post_id=post_id,
		)

	async def notify_role_change(self, user_id: UUID, admin_id: UUID | None, new_role: str) -> NotifyResult:
		return await self._fail_soft(NotificationType.ROLE_CHANGE, self._role_change(user_id, admin_id, new_role))

	async def _role_change(self, user_id: UUID, admin_id: UUID | None, new_role: str) -> NotifyResult:
		user = await self.repo.get_user(user_id)
		if user is None:
			raise NotFoundError("User not found")
		admin = await self.repo.get_user(admin_id) if admin_id is not None else None
		admin_name = (admin.display_name or admin.username) if admin else "System"
		return await self._deliver(
			user_id=user.id,
			actor_id=admin.id if admin else None,
			type=NotificationType.ROLE_CHANGE,
			title="Role updated",
			message=f"Your role has been updated to {new_role} by {admin_name}.",
			target_url="/profile",
		)

	# ------------------------------------------------------------------
	# Feed

	async def get_notifications(self, user_id: UUID, *, page: int = 1, limit: int = 10) -> dto.NotificationFeedResponse:
		request = page_request(page, limit)
		items = await self.repo.list_notifications(user_id, offset=request.offset, limit=request.limit)
		total = await self.repo.count_notifications(user_id)
		unread = await self.repo.count_notifications(user_id, unread_only=True)
		actors = await self.repo.get_users(item.actor_id for item in items if item.actor_id)
		notifications = []
		for item in items:
			actor = actors.get(item.actor_id) if item.actor_id else None
			response = dto.NotificationResponse.model_validate(item)
			if actor is not None:
				response.actor = dto.NotificationActor(id=actor.id, username=actor.username, avatar=actor.avatar)
			notifications.append(response)
		info = page_info(request, total)
		return dto.NotificationFeedResponse(
			notifications=notifications,
			total_notifications=total,
			unread_count=unread,
			current_page=info.current_page,
			total_pages=info.total_pages,
		)

	async def mark_as_read(self, user_id: UUID, notification_ids: Optional[Sequence[UUID]] = None) -> int:
		"""Mark the listed notifications (or all when none listed) as read."""
		return await self.repo.mark_notifications_read(user_id, list(notification_ids) if notification_ids else None)

	async def delete_notification(self, user_id: UUID, notification_id: UUID) -> int:
		return await self.repo.delete_notification(user_id, notification_id)

	async def delete_all_notifications(self, user_id: UUID) -> int:
		return await self.repo.delete_all_notifications(user_id)

	# ------------------------------------------------------------------
	# Preferences

	async def get_settings(self, user_id: UUID) -> NotificationSettings:
		stored = await self.repo.get_notification_settings(user_id)
		return stored or NotificationSettings()

	async def update_settings(self, user_id: UUID, changes: dict[str, bool]) -> NotificationSettings:
		current = await self.get_settings(user_id)
		merged = current.model_copy(update={key: value for key, value in changes.items() if value is not None})
		return await self.repo.upsert_notification_settings(user_id, merged)
