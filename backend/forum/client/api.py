"""httpx wrapper around the forum REST API with the session-expiry policy."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, Sequence, Union

import httpx

from forum.client.storage import SessionStorage
from forum.obs import logging as obs_logging

logger = obs_logging.get_logger("forum.client.api")

UnauthorizedHook = Callable[[], Union[None, Awaitable[None]]]


class ForumAPIError(Exception):
	"""Non-2xx answer from the API, carrying the server's ``message``."""

	def __init__(self, status_code: int, message: str, payload: Any = None) -> None:
		super().__init__(f"{status_code}: {message}")
		self.status_code = status_code
		self.message = message
		self.payload = payload


def is_auth_endpoint(path: str) -> bool:
	return path.startswith("/auth/")


def is_refreshable(method: str, path: str) -> bool:
	"""Auth-sensitive or admin-mutation paths get one silent token refresh on 401."""
	if path.startswith("/users") or path.startswith("/admin"):
		return True
	return path.startswith("/categories") and method.upper() != "GET"


class ForumAPI:
	def __init__(
		self,
		base_url: str,
		*,
		storage: SessionStorage,
		transport: httpx.AsyncBaseTransport | None = None,
		timeout: float = 10.0,
		on_unauthorized: Optional[UnauthorizedHook] = None,
	) -> None:
		self.storage = storage
		self.on_unauthorized = on_unauthorized
		self.http = httpx.AsyncClient(base_url=base_url.rstrip("/"), transport=transport, timeout=timeout)

	async def aclose(self) -> None:
		await self.http.aclose()

	async def __aenter__(self) -> "ForumAPI":
		return self

	async def __aexit__(self, *exc_info) -> None:
		await self.aclose()

	def _headers(self) -> dict[str, str]:
		token = self.storage.get("token")
		return {"Authorization": f"Bearer {token}"} if token else {}

	async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
		return await self.http.request(method, path, headers=self._headers(), **kwargs)

	@staticmethod
	def _error(response: httpx.Response) -> ForumAPIError:
		try:
			payload = response.json()
		except ValueError:
			payload = None
		message = payload.get("message") if isinstance(payload, dict) else None
		return ForumAPIError(response.status_code, message or response.reason_phrase, payload)

	async def _session_expired(self) -> None:
		self.storage.remove("token", "user")
		if self.on_unauthorized is not None:
			outcome = self.on_unauthorized()
			if outcome is not None:
				await outcome

	async def _refresh(self) -> bool:
		if not self.storage.get("token"):
			return False
		response = await self._send("POST", "/auth/refresh-token")
		if response.status_code != 200:
			return False
		body = response.json()
		self.storage.set("token", body["token"])
		self.storage.set("user", body.get("user"))
		return True

	async def request(self, method: str, path: str, *, json: Any = None, params: Any = None) -> Any:
		response = await self._send(method, path, json=json, params=params)
		if response.status_code == 401 and not is_auth_endpoint(path):
			if is_refreshable(method, path) and await self._refresh():
				logger.info("token_refreshed_on_401", extra={"path": path})
				response = await self._send(method, path, json=json, params=params)
			if response.status_code == 401:
				await self._session_expired()
		if response.is_error:
			raise self._error(response)
		if not response.content:
			return None
		return response.json()

	# --- Auth -----------------------------------------------------------

	async def register(self, username: str, email: str, password: str, display_name: str) -> dict:
		return await self.request(
			"POST",
			"/auth/register",
			json={"username": username, "email": email, "password": password, "displayName": display_name},
		)

	async def login(self, username: str, password: str) -> dict:
		return await self.request("POST", "/auth/login", json={"username": username, "password": password})

	async def me(self) -> dict:
		return await self.request("GET", "/auth/me")

	async def refresh_token(self) -> dict:
		return await self.request("POST", "/auth/refresh-token")

	# --- Users ----------------------------------------------------------

	async def get_profile(self) -> dict:
		return await self.request("GET", "/users/profile")

	async def update_profile(self, **fields: Any) -> dict:
		return await self.request("PUT", "/users/profile", json=fields)

	async def update_user_role(self, user_id: str, role: str) -> dict:
		return await self.request("PUT", f"/users/{user_id}/role", json={"role": role})

	# --- Content --------------------------------------------------------

	async def list_categories(self) -> list:
		return await self.request("GET", "/categories")

	async def create_category(self, name: str, description: str, **fields: Any) -> dict:
		return await self.request("POST", "/categories", json={"name": name, "description": description, **fields})

	async def latest_topics(self, page: int = 1, limit: int = 10) -> dict:
		return await self.request("GET", "/topics/latest", params={"page": page, "limit": limit})

	async def create_topic(self, title: str, content: str, category_id: str, tags: Sequence[str] = ()) -> dict:
		return await self.request(
			"POST",
			"/topics",
			json={"title": title, "content": content, "categoryId": category_id, "tags": list(tags)},
		)

	async def create_post(self, topic_id: str, content: str, reply_to: str | None = None) -> dict:
		return await self.request("POST", "/posts", json={"topicId": topic_id, "content": content, "replyTo": reply_to})

	async def toggle_like(self, post_id: str) -> dict:
		return await self.request("POST", f"/posts/{post_id}/like")

	# --- Notifications --------------------------------------------------

	async def get_notifications(self, page: int = 1, limit: int = 10) -> dict:
		return await self.request("GET", "/notifications", params={"page": page, "limit": limit})

	async def mark_notifications_read(self, notification_ids: Sequence[str] | None = None) -> dict:
		body = {"notificationIds": list(notification_ids)} if notification_ids else {}
		return await self.request("POST", "/notifications/mark-read", json=body)

	async def delete_notification(self, notification_id: str) -> dict:
		return await self.request("DELETE", f"/notifications/{notification_id}")

	async def delete_all_notifications(self) -> dict:
		return await self.request("DELETE", "/notifications")
