"""Role hierarchy for forum users."""

from __future__ import annotations

from enum import Enum

_RANK = {"student": 1, "teacher": 2, "admin": 3}


class Role(str, Enum):
	"""Closed set of user roles with a total order student < teacher < admin."""

	STUDENT = "student"
	TEACHER = "teacher"
	ADMIN = "admin"

	@property
	def rank(self) -> int:
		return _RANK[self.value]

	def __lt__(self, other: object) -> bool:
		if not isinstance(other, Role):
			return NotImplemented
		return self.rank < other.rank

	def __le__(self, other: object) -> bool:
		if not isinstance(other, Role):
			return NotImplemented
		return self.rank <= other.rank

	def __gt__(self, other: object) -> bool:
		if not isinstance(other, Role):
			return NotImplemented
		return self.rank > other.rank

	def __ge__(self, other: object) -> bool:
		if not isinstance(other, Role):
			return NotImplemented
		return self.rank >= other.rank


def has_at_least(role: Role | str | None, required: Role) -> bool:
	"""Return True when ``role`` ranks at or above ``required``."""
	if role is None:
		return False
	if not isinstance(role, Role):
		try:
			role = Role(str(role))
		except ValueError:
			return False
	return role >= required


def parse_role(raw: str | None) -> Role | None:
	"""Strictly parse a role name; unknown values yield None."""
	if raw is None:
		return None
	try:
		return Role(str(raw).strip().lower())
	except ValueError:
		return None


def normalize_role(raw: object) -> Role:
	"""Lenient mapping used for tokens and client payloads.

	Accepts any case, an optional ``ROLE_`` prefix, and falls back to student.
	"""
	text = str(raw or "").strip().lower()
	if text.startswith("role_"):
		text = text[len("role_"):]
	return parse_role(text) or Role.STUDENT
