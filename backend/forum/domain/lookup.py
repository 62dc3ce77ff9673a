"""Tagged identifier lookups.

Route parameters such as ``/topics/{idOrSlug}`` are parsed once into a
``ById`` or ``BySlug``/``ByUsername`` value and callers branch on the tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from forum.domain.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class ById:
	id: UUID


@dataclass(frozen=True, slots=True)
class BySlug:
	slug: str


@dataclass(frozen=True, slots=True)
class ByUsername:
	username: str


Lookup = Union[ById, BySlug]
UserLookup = Union[ById, ByUsername]


def try_parse_id(raw: str) -> UUID | None:
	try:
		return UUID(str(raw).strip())
	except (ValueError, AttributeError, TypeError):
		return None


def parse_id(raw: object, message: str = "Invalid ID") -> UUID:
	"""Parse a required identifier, raising a validation error when malformed."""
	if isinstance(raw, UUID):
		return raw
	value = try_parse_id(str(raw)) if raw is not None else None
	if value is None:
		raise ValidationError(message)
	return value


def parse_lookup(raw: str) -> Lookup:
	value = try_parse_id(raw)
	if value is not None:
		return ById(value)
	return BySlug(raw.strip())


def parse_user_lookup(raw: str) -> UserLookup:
	value = try_parse_id(raw)
	if value is not None:
		return ById(value)
	return ByUsername(raw.strip())
