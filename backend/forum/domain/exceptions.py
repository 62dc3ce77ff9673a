"""Custom exceptions for forum services."""

from __future__ import annotations

from fastapi import status


class ForumError(Exception):
	"""Base class for forum errors surfaced to clients."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	message: str = "Bad request"

	def __init__(self, message: str | None = None) -> None:
		super().__init__(message or self.message)
		if message:
			self.message = message


class ValidationError(ForumError):
	"""Missing or malformed input, including malformed identifiers."""

	status_code = status.HTTP_400_BAD_REQUEST
	message = "Validation failed"


class UnauthorizedError(ForumError):
	"""Missing, invalid or expired credentials."""

	status_code = status.HTTP_401_UNAUTHORIZED
	message = "Authentication required"


class ForbiddenError(ForumError):
	"""Raised when the caller lacks the role or ownership for an action."""

	status_code = status.HTTP_403_FORBIDDEN
	message = "Access denied"


class NotFoundError(ForumError):
	"""Dangling id or slug."""

	status_code = status.HTTP_404_NOT_FOUND
	message = "Not found"


class ConflictError(ForumError):
	"""Duplicate username, email or slug."""

	status_code = status.HTTP_409_CONFLICT
	message = "Conflict"


class IntegrityError(ConflictError):
	"""A delete blocked by dependent rows (children, topics, replies)."""

	message = "Resource is still referenced"
