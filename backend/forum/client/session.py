"""Client-side authentication state backed by :class:`SessionStorage`."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Optional, Union
from uuid import UUID

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from forum.client.api import ForumAPI, ForumAPIError
from forum.client.storage import SessionStorage
from forum.domain.roles import Role, normalize_role
from forum.obs import logging as obs_logging

logger = obs_logging.get_logger("forum.client.session")

Listener = Callable[[Optional["SessionUser"]], Union[None, Awaitable[None]]]


class SessionUser(BaseModel):
	"""The signed-in user as cached on the client."""

	id: UUID
	username: str
	email: str = ""
	display_name: str = ""
	role: Role = Role.STUDENT
	avatar: Optional[str] = None
	bio: str = ""

	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

	@field_validator("role", mode="before")
	@classmethod
	def _normalize(cls, value: Any) -> Role:
		return normalize_role(value)

	def has_role(self, required: Role) -> bool:
		return self.role >= required


class AuthSession:
	def __init__(self, api: ForumAPI, storage: SessionStorage) -> None:
		self.api = api
		self.storage = storage
		self.user: SessionUser | None = None
		self.is_loading = True
		self._listeners: List[Listener] = []
		api.on_unauthorized = self._expired

	@property
	def is_authenticated(self) -> bool:
		return self.user is not None

	@property
	def token(self) -> str | None:
		return self.storage.get("token")

	def subscribe(self, listener: Listener) -> None:
		self._listeners.append(listener)

	async def _emit(self) -> None:
		for listener in list(self._listeners):
			outcome = listener(self.user)
			if outcome is not None:
				await outcome

	def _store(self, token: str | None, raw_user: Any) -> SessionUser:
		user = SessionUser.model_validate(raw_user)
		if token:
			self.storage.set("token", token)
		self.storage.set("user", user.model_dump(mode="json", by_alias=True))
		self.user = user
		return user

	async def restore(self) -> SessionUser | None:
		"""Load the cached user; malformed cached data clears the session."""
		raw = self.storage.get("user")
		if raw is not None and self.token:
			try:
				self.user = SessionUser.model_validate(raw)
			except ValidationError:
				logger.warning("session_user_malformed")
				self.storage.remove("token", "user")
				self.user = None
		else:
			self.user = None
		self.is_loading = False
		await self._emit()
		return self.user

	async def _finish_sign_in(self, body: dict) -> SessionUser:
		self._store(body["token"], body["user"])
		try:
			await self.refresh_user()
		except (ForumAPIError, httpx.HTTPError, ValidationError):
			logger.warning("post_login_refresh_failed", exc_info=True)
			await self.logout()
			raise
		await self._emit()
		return self.user

	async def login(self, username: str, password: str) -> SessionUser:
		return await self._finish_sign_in(await self.api.login(username, password))

	async def register(self, username: str, email: str, password: str, display_name: str) -> SessionUser:
		return await self._finish_sign_in(await self.api.register(username, email, password, display_name))

	async def refresh_user(self) -> SessionUser:
		"""Swap in a fresh token so role changes show up without re-login."""
		body = await self.api.refresh_token()
		return self._store(body["token"], body["user"])

	async def check_auth(self) -> bool:
		if not self.token:
			self.user = None
			self.is_loading = False
			await self._emit()
			return False
		try:
			body = await self.api.me()
			self._store(None, body["user"])
		except (ForumAPIError, httpx.HTTPError, ValidationError):
			logger.info("session_check_failed", exc_info=True)
			self.storage.remove("token", "user")
			self.user = None
		self.is_loading = False
		await self._emit()
		return self.user is not None

	async def logout(self) -> None:
		self.storage.remove("token", "user")
		self.user = None
		await self._emit()

	async def _expired(self) -> None:
		if self.user is not None:
			await self.logout()
