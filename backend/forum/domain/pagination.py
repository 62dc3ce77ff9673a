"""Offset pagination shared by every list endpoint."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PageRequest:
	page: int
	limit: int

	@property
	def offset(self) -> int:
		return (self.page - 1) * self.limit


@dataclass(frozen=True, slots=True)
class PageInfo:
	current_page: int
	total_pages: int
	total_items: int
	has_more: bool


def page_request(page: int | None, limit: int | None, *, default_limit: int = 10, max_limit: int = 100) -> PageRequest:
	"""Clamp raw query values into a valid 1-indexed page request."""
	page_value = page if page and page >= 1 else 1
	limit_value = limit if limit and limit >= 1 else default_limit
	return PageRequest(page=page_value, limit=min(limit_value, max_limit))


def page_info(request: PageRequest, total: int) -> PageInfo:
	return PageInfo(
		current_page=request.page,
		total_pages=math.ceil(total / request.limit),
		total_items=total,
		has_more=request.page * request.limit < total,
	)
