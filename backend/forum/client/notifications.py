"""Notification feed cache with optimistic updates and background polling."""

from __future__ import annotations

import asyncio
import contextlib
from typing import List, Optional, Sequence
from uuid import UUID

import httpx

from forum.client.api import ForumAPI, ForumAPIError
from forum.client.session import AuthSession, SessionUser
from forum.obs import logging as obs_logging
from forum.schemas.dto import NotificationResponse

logger = obs_logging.get_logger("forum.client.notifications")

DEFAULT_POLL_SECONDS = 30.0


class NotificationFeed:
	"""Mirror of the signed-in user's notification feed.

	Mutations patch the local copy after the server accepts them; fetch
	failures are logged and leave the cached state in place. While a user
	is signed in a background task refetches the current page every
	``poll_interval`` seconds.
	"""

	def __init__(self, api: ForumAPI, *, poll_interval: float = DEFAULT_POLL_SECONDS, limit: int = 10) -> None:
		self.api = api
		self.poll_interval = poll_interval
		self.limit = limit
		self.notifications: List[NotificationResponse] = []
		self.unread_count = 0
		self.total_notifications = 0
		self.current_page = 1
		self.total_pages = 1
		self.loading = False
		self._poller: asyncio.Task | None = None

	def attach(self, session: AuthSession) -> None:
		session.subscribe(self._on_auth_change)

	async def _on_auth_change(self, user: Optional[SessionUser]) -> None:
		if user is not None:
			self.start()
		else:
			await self.stop()
			self.reset()

	def reset(self) -> None:
		self.notifications = []
		self.unread_count = 0
		self.total_notifications = 0
		self.current_page = 1
		self.total_pages = 1

	# ------------------------------------------------------------------
	# Polling

	@property
	def polling(self) -> bool:
		return self._poller is not None and not self._poller.done()

	def start(self) -> None:
		if self.polling:
			return
		self._poller = asyncio.create_task(self._poll())

	async def stop(self) -> None:
		poller, self._poller = self._poller, None
		if poller is None:
			return
		if poller is asyncio.current_task():
			# Logout triggered from inside a poll; the loop sees it lost ownership.
			return
		poller.cancel()
		with contextlib.suppress(asyncio.CancelledError):
			await poller

	async def _poll(self) -> None:
		me = asyncio.current_task()
		while self._poller is me:
			await self.fetch(self.current_page)
			if self._poller is not me:
				return
			await asyncio.sleep(self.poll_interval)

	# ------------------------------------------------------------------
	# Server calls

	async def fetch(self, page: int = 1) -> bool:
		self.loading = True
		try:
			body = await self.api.get_notifications(page=page, limit=self.limit)
			notifications = [NotificationResponse.model_validate(item) for item in body["notifications"]]
			counts = (body["unreadCount"], body["totalNotifications"], body["currentPage"], body["totalPages"])
		except (ForumAPIError, httpx.HTTPError, ValueError, KeyError, TypeError):
			# ValueError covers malformed JSON and pydantic ValidationError
			logger.warning("notification_fetch_failed", exc_info=True)
			return False
		finally:
			self.loading = False
		self.notifications = notifications
		self.unread_count, self.total_notifications, self.current_page, self.total_pages = counts
		return True

	async def mark_as_read(self, notification_ids: Sequence[UUID | str] | None = None) -> int:
		ids = [str(item) for item in notification_ids] if notification_ids else None
		body = await self.api.mark_notifications_read(ids)
		modified = body.get("modifiedCount", 0)
		if ids is None:
			for item in self.notifications:
				item.read = True
			self.unread_count = 0
		else:
			wanted = set(ids)
			for item in self.notifications:
				if str(item.id) in wanted:
					item.read = True
			self.unread_count = max(0, self.unread_count - modified)
		return modified

	async def delete(self, notification_id: UUID | str) -> None:
		await self.api.delete_notification(str(notification_id))
		key = str(notification_id)
		removed = next((item for item in self.notifications if str(item.id) == key), None)
		if removed is None:
			return
		self.notifications.remove(removed)
		self.total_notifications = max(0, self.total_notifications - 1)
		if not removed.read:
			self.unread_count = max(0, self.unread_count - 1)

	async def delete_all(self) -> int:
		body = await self.api.delete_all_notifications()
		self.reset()
		return body.get("deletedCount", 0)
