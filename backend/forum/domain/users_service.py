"""Account lifecycle: registration, login, profiles and role management."""

from __future__ import annotations

from datetime import datetime, timezone
from urllib.parse import quote
from uuid import UUID

from forum.domain import repo as repo_module
from forum.domain.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from forum.domain.lookup import ById, parse_id, parse_user_lookup
from forum.domain.models import NotificationType, User
from forum.domain.notifications_service import NotificationService
from forum.domain.pagination import page_info, page_request
from forum.domain.roles import Role, parse_role
from forum.infra import jwt as jwt_helper
from forum.infra.auth import AuthenticatedUser
from forum.infra.password import check_needs_rehash, hash_password, verify_password
from forum.obs import logging as obs_logging
from forum.obs import metrics as obs_metrics
from forum.schemas import dto
from forum.settings import Settings, settings as default_settings

logger = obs_logging.get_logger("forum.users")


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _pagination(info) -> dto.PaginationResponse:
	return dto.PaginationResponse(
		current_page=info.current_page,
		total_pages=info.total_pages,
		total_items=info.total_items,
		has_more=info.has_more,
	)


class UsersService:
	def __init__(
		self,
		repository: repo_module.ForumRepository,
		notifications: NotificationService,
		*,
		settings: Settings | None = None,
	) -> None:
		self.repo = repository
		self.notifications = notifications
		self.settings = settings or default_settings

	# ------------------------------------------------------------------
	# Helpers

	def issue_token(self, user: User) -> str:
		claims = AuthenticatedUser(id=user.id, username=user.username, email=user.email, role=user.role).claims()
		return jwt_helper.encode_access(claims, settings=self.settings)

	def avatar_url(self, username: str) -> str | None:
		"""DiceBear avatar for a new account; no base URL configured means no avatar."""
		base = self.settings.avatar_base_url
		if not base:
			return None
		return f"{base.rstrip('?')}?seed={quote(username, safe='')}"

	async def _require_user(self, user_id: UUID) -> User:
		user = await self.repo.get_user(user_id)
		if user is None:
			raise NotFoundError("User not found")
		return user

	# ------------------------------------------------------------------
	# Session lifecycle

	async def register(self, payload: dto.RegisterRequest) -> dto.AuthResponse:
		"""Create a student account; privileged roles are only granted by an admin."""
		if await self.repo.get_user_by_username(payload.username):
			obs_metrics.inc_auth("register", "conflict")
			raise ConflictError("Username already exists")
		if await self.repo.get_user_by_email(str(payload.email)):
			obs_metrics.inc_auth("register", "conflict")
			raise ConflictError("Email already exists")
		user = await self.repo.create_user(
			username=payload.username,
			email=str(payload.email),
			password_hash=hash_password(payload.password),
			display_name=payload.display_name,
			role=Role.STUDENT.value,
			avatar=self.avatar_url(payload.username),
		)
		obs_metrics.inc_auth("register", "ok")
		logger.info("user_registered", extra={"user": str(user.id)})
		return dto.AuthResponse(
			message="User registered successfully",
			user=dto.UserResponse.model_validate(user),
			token=self.issue_token(user),
		)

	async def login(self, payload: dto.LoginRequest) -> dto.AuthResponse:
		user = await self.repo.find_user_by_login(payload.username)
		if user is None or not verify_password(user.password_hash, payload.password):
			obs_metrics.inc_auth("login", "rejected")
			raise UnauthorizedError("Invalid credentials")
		changes: dict[str, object] = {"last_active": _now()}
		if check_needs_rehash(user.password_hash):
			changes["password_hash"] = hash_password(payload.password)
		user = await self.repo.update_user(user.id, **changes) or user
		obs_metrics.inc_auth("login", "ok")
		return dto.AuthResponse(
			message="Login successful",
			user=dto.UserResponse.model_validate(user),
			token=self.issue_token(user),
		)

	async def me(self, auth_user: AuthenticatedUser) -> dto.CurrentUserResponse:
		user = await self._require_user(auth_user.id)
		return dto.CurrentUserResponse(user=dto.UserResponse.model_validate(user))

	async def refresh_token(self, auth_user: AuthenticatedUser) -> dto.TokenResponse:
		"""Re-read the account so a changed role is reflected in the new token."""
		user = await self._require_user(auth_user.id)
		return dto.TokenResponse(token=self.issue_token(user), user=dto.UserResponse.model_validate(user))

	# ------------------------------------------------------------------
	# Directory

	async def list_users(self) -> dto.UserListResponse:
		users = await self.repo.list_users()
		return dto.UserListResponse(items=[dto.UserResponse.model_validate(user) for user in users])

	async def list_public_users(self, *, page: int = 1, limit: int | None = None) -> dto.PublicUserListResponse:
		request = page_request(
			page,
			limit,
			default_limit=self.settings.default_page_size,
			max_limit=self.settings.max_page_size,
		)
		users, total = await self.repo.list_users_page(offset=request.offset, limit=request.limit)
		return dto.PublicUserListResponse(
			items=[dto.PublicUserResponse.model_validate(user) for user in users],
			pagination=_pagination(page_info(request, total)),
		)

	async def get_public_profile(self, id_or_username: str) -> dto.PublicUserResponse:
		lookup = parse_user_lookup(id_or_username)
		if isinstance(lookup, ById):
			user = await self.repo.get_user(lookup.id)
		else:
			user = await self.repo.get_user_by_username(lookup.username)
		if user is None:
			raise NotFoundError("User not found")
		topic_count, post_count = await self.repo.count_user_content(user.id)
		profile = dto.PublicUserResponse.model_validate(user)
		profile.topic_count = topic_count
		profile.post_count = post_count
		return profile

	# ------------------------------------------------------------------
	# Own profile

	async def get_profile(self, auth_user: AuthenticatedUser) -> dto.UserResponse:
		return dto.UserResponse.model_validate(await self._require_user(auth_user.id))

	async def update_profile(self, auth_user: AuthenticatedUser, payload: dto.ProfileUpdateRequest) -> dto.ProfileResponse:
		changes = payload.model_dump(exclude_none=True)
		if not changes:
			raise ValidationError("At least one field to update is required")
		user = await self._require_user(auth_user.id)
		if "username" in changes and changes["username"] != user.username:
			existing = await self.repo.get_user_by_username(changes["username"])
			if existing is not None and existing.id != user.id:
				raise ConflictError("Username is already taken")
		if "email" in changes:
			changes["email"] = str(changes["email"])
			if changes["email"] != user.email:
				existing = await self.repo.get_user_by_email(changes["email"])
				if existing is not None and existing.id != user.id:
					raise ConflictError("Email is already in use")
		updated = await self.repo.update_user(user.id, **changes)
		if updated is None:
			raise NotFoundError("User not found")
		return dto.ProfileResponse(message="Profile updated successfully", user=dto.UserResponse.model_validate(updated))

	async def change_password(self, auth_user: AuthenticatedUser, payload: dto.PasswordChangeRequest) -> dto.MessageResponse:
		user = await self._require_user(auth_user.id)
		if not verify_password(user.password_hash, payload.current_password):
			raise ValidationError("Current password is incorrect")
		await self.repo.update_user(user.id, password_hash=hash_password(payload.new_password))
		return dto.MessageResponse(message="Password updated successfully")

	# ------------------------------------------------------------------
	# Roles

	async def update_role(self, admin: AuthenticatedUser, user_id: str, raw_role: str) -> dto.RoleUpdateResponse:
		"""Set a user's role and tell them about it.

		The notification is inserted directly rather than through
		``notify_role_change``; it still never targets the acting admin.
		"""
		role = parse_role(raw_role)
		if role is None:
			raise ValidationError("Invalid role. Role must be student, teacher, or admin")
		target_id = parse_id(user_id, "Invalid user ID")
		updated = await self.repo.update_user(target_id, role=role)
		if updated is None:
			raise NotFoundError("User not found")
		try:
			await self.notifications.create_notification(
				user_id=updated.id,
				actor_id=admin.id,
				type=NotificationType.ROLE_CHANGE,
				title="Role updated",
				message=f"Your role has been updated to {role.value} by {admin.username}.",
				target_url="/profile",
			)
		except Exception:
			logger.warning("role_change_notification_failed", exc_info=True, extra={"user": str(updated.id)})
			obs_metrics.inc_notification(NotificationType.ROLE_CHANGE.value, "failed")
		return dto.RoleUpdateResponse(message="User role updated successfully", user=dto.UserResponse.model_validate(updated))

	async def promote(self, identifier: str, role: Role) -> User:
		"""Operator path used by ``scripts/promote_admin.py``; notifies as "System"."""
		user = await self.repo.find_user_by_login(identifier)
		if user is None:
			raise NotFoundError("User not found")
		updated = await self.repo.update_user(user.id, role=role)
		if updated is None:
			raise NotFoundError("User not found")
		result = await self.notifications.notify_role_change(updated.id, None, role.value)
		if not result.ok:
			logger.warning("role_change_notification_failed", extra={"user": str(updated.id), "reason": result.reason})
		return updated
