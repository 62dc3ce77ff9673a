"""Slug and mention helpers."""

from __future__ import annotations

import re
import time

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
MENTION_RE = re.compile(r"@(\w+)")


def slugify(text: str) -> str:
	"""Lowercase and collapse every run of non ``[a-z0-9]`` characters to ``-``."""
	return _NON_ALNUM_RE.sub("-", text.lower())


def category_slug(name: str) -> str:
	return slugify(name)


def topic_slug(title: str, *, now_ms: int | None = None) -> str:
	"""Topic slugs carry the creation epoch millis so they are unique by construction."""
	stamp = now_ms if now_ms is not None else int(time.time() * 1000)
	return f"{slugify(title)}-{stamp}"


def extract_mentions(content: str) -> list[str]:
	"""Return mentioned usernames in order of first appearance, without duplicates."""
	seen: dict[str, None] = {}
	for match in MENTION_RE.finditer(content or ""):
		seen.setdefault(match.group(1), None)
	return list(seen)
