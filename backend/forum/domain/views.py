"""Denormalized response assembly: attaches authors, last posts and reply targets."""

from __future__ import annotations

import asyncio
from typing import Iterable
from uuid import UUID

from forum.domain import models, repo as repo_module
from forum.schemas import dto


def user_summary(user: models.User | None) -> dto.UserSummary | None:
	if user is None:
		return None
	return dto.UserSummary.model_validate(user)


class ViewBuilder:
	"""Joins related rows onto topics and posts.

	List views fan out one join per item over the current page with
	``asyncio.gather``; the page size bounds the concurrency.
	"""

	def __init__(self, repository: repo_module.ForumRepository) -> None:
		self.repo = repository

	async def author(self, user_id: UUID | None) -> dto.UserSummary | None:
		if user_id is None:
			return None
		return user_summary(await self.repo.get_user(user_id))

	async def post(self, post: models.Post) -> dto.PostResponse:
		view = dto.PostResponse.model_validate(post)
		view.author = await self.author(post.author_id)
		return view

	async def post_detail(self, post: models.Post) -> dto.PostDetailResponse:
		view = dto.PostDetailResponse.model_validate(post)
		view.author = await self.author(post.author_id)
		if post.reply_to is not None:
			target = await self.repo.get_post(post.reply_to)
			if target is not None:
				view.reply_to_post = await self.post(target)
		return view

	async def post_details(self, posts: Iterable[models.Post]) -> list[dto.PostDetailResponse]:
		return list(await asyncio.gather(*(self.post_detail(post) for post in posts)))

	async def last_post(self, topic: models.Topic) -> dto.PostResponse | None:
		if topic.last_post_id is None:
			return None
		post = await self.repo.get_post(topic.last_post_id)
		if post is None:
			return None
		return await self.post(post)

	async def topic(self, topic: models.Topic) -> dto.TopicResponse:
		view = dto.TopicResponse.model_validate(topic)
		view.author = await self.author(topic.author_id)
		return view

	async def topic_item(self, topic: models.Topic, *, with_post_count: bool = False) -> dto.TopicListItem:
		view = dto.TopicListItem.model_validate(topic)
		view.author = await self.author(topic.author_id)
		view.last_post = await self.last_post(topic)
		if with_post_count:
			view.post_count = await self.repo.count_topic_posts(topic.id)
		return view

	async def topic_items(
		self,
		topics: Iterable[models.Topic],
		*,
		with_post_count: bool = False,
	) -> list[dto.TopicListItem]:
		return list(await asyncio.gather(*(self.topic_item(topic, with_post_count=with_post_count) for topic in topics)))
