"""Authentication helpers for FastAPI endpoints.

The bearer token is the sole source of identity: routes never re-read the
user row just to authorize a request. Role changes therefore take effect on
the next ``/auth/refresh-token``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from forum.domain.exceptions import ForbiddenError, UnauthorizedError
from forum.domain.roles import Role, has_at_least, normalize_role
from forum.infra import jwt as jwt_helper
from forum.obs import logging as obs_logging


@dataclass(slots=True)
class AuthenticatedUser:
	id: UUID
	username: str
	email: str
	role: Role = Role.STUDENT

	def has_role(self, required: Role) -> bool:
		return has_at_least(self.role, required)

	def claims(self) -> dict[str, object]:
		return {
			"sub": str(self.id),
			"userId": str(self.id),
			"username": self.username,
			"email": self.email,
			"role": self.role.value,
		}


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode a session token into an AuthenticatedUser or raise UnauthorizedError."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception as exc:
		raise UnauthorizedError("Invalid or expired token") from exc
	try:
		user_id = UUID(str(payload.get("sub") or payload.get("userId")))
	except ValueError as exc:
		raise UnauthorizedError("Invalid or expired token") from exc
	return AuthenticatedUser(
		id=user_id,
		username=str(payload.get("username") or ""),
		email=str(payload.get("email") or ""),
		role=normalize_role(payload.get("role")),
	)


async def get_optional_user(
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser | None:
	if not credentials or credentials.scheme.lower() != "bearer":
		return None
	user = verify_access_jwt(credentials.credentials)
	obs_logging.bind_user(str(user.id))
	return user


async def get_current_user(
	user: AuthenticatedUser | None = Depends(get_optional_user),
) -> AuthenticatedUser:
	if user is None:
		raise UnauthorizedError("Authentication required. No token provided.")
	return user


def require_role(required: Role):
	"""Return a dependency that admits users ranked at or above ``required``.

	Usage:
		@router.post("", dependencies=[Depends(require_role(Role.TEACHER))])
	"""

	message = (
		"Access denied. Admin privileges required."
		if required is Role.ADMIN
		else "Access denied. Teacher or admin privileges required."
	)

	async def _dep(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
		if user.has_role(required):
			return user
		raise ForbiddenError(message)

	return _dep
