import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from forum.domain import models
from forum.domain.exceptions import ConflictError
from forum.domain.roles import Role
from forum.domain.services import build_services
from forum.domain.slugs import category_slug
from forum.infra.auth import AuthenticatedUser
from forum.infra.password import hash_password
from forum.main import create_app
from forum.settings import Settings


# Ensure a selector-based event loop policy on Windows to avoid Proactor issues with async IO
if sys.platform == "win32":
	asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeForumRepository:
	"""In-memory stand-in for ``ForumRepository`` with the same method surface.

	Every insert advances a private clock by one second so orderings by
	``created_at`` are deterministic. Method names listed in ``fail_on`` raise
	``RuntimeError`` to exercise failure paths.
	"""

	def __init__(self) -> None:
		self.users: dict[UUID, models.User] = {}
		self.categories: dict[UUID, models.Category] = {}
		self.topics: dict[UUID, models.Topic] = {}
		self.posts: dict[UUID, models.Post] = {}
		self.notifications: dict[UUID, models.Notification] = {}
		self.settings: dict[UUID, models.NotificationSettings] = {}
		self.fail_on: set[str] = set()
		self._ticks = 0

	def _now(self) -> datetime:
		self._ticks += 1
		return _EPOCH + timedelta(seconds=self._ticks)

	def _check(self, name: str) -> None:
		if name in self.fail_on:
			raise RuntimeError(f"{name} failed")

	def _touch(self, model, **fields: Any):
		fields = {key: (value.value if isinstance(value, Role) else value) for key, value in fields.items()}
		return model.model_copy(update={**fields, "updated_at": self._now()})

	# --- Users -------------------------------------------------------------

	async def create_user(self, *, username, email, password_hash, display_name, role, avatar) -> models.User:
		self._check("create_user")
		if any(user.username == username for user in self.users.values()):
			raise ConflictError("Username already exists")
		if any(user.email == email for user in self.users.values()):
			raise ConflictError("Email already exists")
		now = self._now()
		user = models.User(
			id=uuid4(),
			username=username,
			email=email,
			password_hash=password_hash,
			display_name=display_name,
			role=Role(role),
			avatar=avatar,
			created_at=now,
			updated_at=now,
			last_active=now,
		)
		self.users[user.id] = user
		return user

	async def get_user(self, user_id: UUID) -> models.User | None:
		return self.users.get(user_id)

	async def get_user_by_username(self, username: str) -> models.User | None:
		return next((user for user in self.users.values() if user.username == username), None)

	async def get_user_by_email(self, email: str) -> models.User | None:
		return next((user for user in self.users.values() if user.email == email), None)

	async def find_user_by_login(self, identifier: str) -> models.User | None:
		return await self.get_user_by_username(identifier) or await self.get_user_by_email(identifier)

	async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, models.User]:
		return {uid: self.users[uid] for uid in set(user_ids) if uid in self.users}

	async def list_users(self) -> list[models.User]:
		return sorted(self.users.values(), key=lambda user: user.created_at)

	async def list_users_page(self, *, offset: int, limit: int) -> tuple[list[models.User], int]:
		users = await self.list_users()
		return users[offset : offset + limit], len(users)

	async def update_user(self, user_id: UUID, **fields: Any) -> models.User | None:
		user = self.users.get(user_id)
		if user is None:
			return None
		for key, message in (("username", "Username already exists"), ("email", "Email already exists")):
			if key in fields and any(
				getattr(other, key) == fields[key] and other.id != user_id for other in self.users.values()
			):
				raise ConflictError(message)
		self.users[user_id] = self._touch(user, **fields)
		if "role" in fields:
			self.users[user_id] = self.users[user_id].model_copy(update={"role": Role(fields["role"])})
		return self.users[user_id]

	async def count_user_content(self, user_id: UUID) -> tuple[int, int]:
		topics = sum(1 for topic in self.topics.values() if topic.author_id == user_id)
		posts = sum(1 for post in self.posts.values() if post.author_id == user_id)
		return topics, posts

	# --- Notification settings ----------------------------------------------

	async def get_notification_settings(self, user_id: UUID) -> models.NotificationSettings | None:
		return self.settings.get(user_id)

	async def upsert_notification_settings(self, user_id: UUID, settings: models.NotificationSettings):
		self.settings[user_id] = settings.model_copy()
		return self.settings[user_id]

	# --- Categories ----------------------------------------------------------

	async def create_category(self, *, name, description, slug, order, parent_category, created_by) -> models.Category:
		if any(category.slug == slug for category in self.categories.values()):
			raise ConflictError("A category with this name already exists")
		now = self._now()
		category = models.Category(
			id=uuid4(),
			name=name,
			description=description,
			slug=slug,
			order=order,
			parent_category=parent_category,
			created_by=created_by,
			created_at=now,
			updated_at=now,
		)
		self.categories[category.id] = category
		return category

	async def get_category(self, category_id: UUID) -> models.Category | None:
		return self.categories.get(category_id)

	async def get_category_by_slug(self, slug: str) -> models.Category | None:
		return next((category for category in self.categories.values() if category.slug == slug), None)

	async def list_categories(self) -> list[models.Category]:
		return sorted(self.categories.values(), key=lambda category: (category.order, category.name))

	async def list_child_categories(self, parent_id: UUID) -> list[models.Category]:
		return [category for category in await self.list_categories() if category.parent_category == parent_id]

	async def update_category(self, category_id: UUID, **fields: Any) -> models.Category | None:
		category = self.categories.get(category_id)
		if category is None:
			return None
		self.categories[category_id] = self._touch(category, **fields)
		return self.categories[category_id]

	async def count_child_categories(self, category_id: UUID) -> int:
		return len(await self.list_child_categories(category_id))

	async def count_category_topics(self, category_id: UUID) -> int:
		return sum(1 for topic in self.topics.values() if topic.category_id == category_id)

	async def delete_category(self, category_id: UUID) -> bool:
		return self.categories.pop(category_id, None) is not None

	# --- Topics --------------------------------------------------------------

	async def create_topic(self, *, title, content, slug, category_id, author_id, tags) -> models.Topic:
		self._check("create_topic")
		now = self._now()
		topic = models.Topic(
			id=uuid4(),
			title=title,
			content=content,
			slug=slug,
			category_id=category_id,
			author_id=author_id,
			tags=list(tags),
			created_at=now,
			updated_at=now,
		)
		self.topics[topic.id] = topic
		return topic

	async def get_topic(self, topic_id: UUID) -> models.Topic | None:
		return self.topics.get(topic_id)

	async def get_topic_by_slug(self, slug: str) -> models.Topic | None:
		return next((topic for topic in self.topics.values() if topic.slug == slug), None)

	async def get_topics(self, topic_ids: Iterable[UUID]) -> dict[UUID, models.Topic]:
		return {tid: self.topics[tid] for tid in set(topic_ids) if tid in self.topics}

	async def increment_topic_views(self, topic_id: UUID) -> models.Topic | None:
		topic = self.topics.get(topic_id)
		if topic is None:
			return None
		self.topics[topic_id] = topic.model_copy(update={"view_count": topic.view_count + 1})
		return self.topics[topic_id]

	@staticmethod
	def _activity(topic: models.Topic):
		return (topic.last_post_at or topic.created_at, str(topic.id))

	async def list_latest_topics(self, *, offset: int, limit: int) -> tuple[list[models.Topic], int]:
		topics = sorted(self.topics.values(), key=self._activity, reverse=True)
		return topics[offset : offset + limit], len(topics)

	async def list_category_topics(self, category_id, *, offset: int = 0, limit: int | None = None):
		topics = sorted(
			(topic for topic in self.topics.values() if topic.category_id == category_id),
			key=lambda topic: (topic.is_pinned, *self._activity(topic)),
			reverse=True,
		)
		end = None if limit is None else offset + limit
		return topics[offset:end], len(topics)

	async def update_topic(self, topic_id: UUID, **fields: Any) -> models.Topic | None:
		topic = self.topics.get(topic_id)
		if topic is None:
			return None
		self.topics[topic_id] = self._touch(topic, **fields)
		return self.topics[topic_id]

	async def set_topic_last_post(self, topic_id: UUID, post_id: UUID, at: datetime) -> models.Topic | None:
		topic = self.topics.get(topic_id)
		if topic is None:
			return None
		self.topics[topic_id] = topic.model_copy(update={"last_post_id": post_id, "last_post_at": at})
		return self.topics[topic_id]

	async def delete_topic(self, topic_id: UUID) -> bool:
		for post_id in [pid for pid, post in self.posts.items() if post.topic_id == topic_id]:
			del self.posts[post_id]
		return self.topics.pop(topic_id, None) is not None

	async def list_topic_ids(self) -> list[UUID]:
		return [topic.id for topic in sorted(self.topics.values(), key=lambda topic: topic.created_at)]

	def _latest_post(self, topic_id: UUID) -> models.Post | None:
		posts = [post for post in self.posts.values() if post.topic_id == topic_id]
		return max(posts, key=lambda post: (post.created_at, str(post.id)), default=None)

	async def reconcile_topic(self, topic_id: UUID):
		before = self.topics.get(topic_id)
		if before is None:
			return None
		total = sum(1 for post in self.posts.values() if post.topic_id == topic_id)
		latest = self._latest_post(topic_id)
		after = before.model_copy(
			update={
				"reply_count": max(total - 1, 0),
				"last_post_id": latest.id if latest else before.id,
				"last_post_at": latest.created_at if latest else before.created_at,
			}
		)
		self.topics[topic_id] = after
		return before, after

	# --- Posts ---------------------------------------------------------------

	async def create_post(self, *, topic_id, author_id, content, reply_to=None) -> models.Post:
		self._check("create_post")
		now = self._now()
		post = models.Post(
			id=uuid4(),
			content=content,
			topic_id=topic_id,
			author_id=author_id,
			reply_to=reply_to,
			created_at=now,
			updated_at=now,
		)
		self.posts[post.id] = post
		return post

	async def create_reply(self, *, topic_id, author_id, content, reply_to=None) -> models.Post:
		self._check("create_reply")
		post = await self.create_post(topic_id=topic_id, author_id=author_id, content=content, reply_to=reply_to)
		topic = self.topics[topic_id]
		self.topics[topic_id] = topic.model_copy(
			update={"reply_count": topic.reply_count + 1, "last_post_id": post.id, "last_post_at": post.created_at}
		)
		return post

	async def get_post(self, post_id: UUID) -> models.Post | None:
		return self.posts.get(post_id)

	async def get_posts(self, post_ids: Iterable[UUID]) -> dict[UUID, models.Post]:
		return {pid: self.posts[pid] for pid in set(post_ids) if pid in self.posts}

	async def list_topic_posts(self, topic_id: UUID, *, offset: int, limit: int):
		posts = sorted(
			(post for post in self.posts.values() if post.topic_id == topic_id),
			key=lambda post: (post.created_at, str(post.id)),
		)
		return posts[offset : offset + limit], len(posts)

	async def count_topic_posts(self, topic_id: UUID) -> int:
		return sum(1 for post in self.posts.values() if post.topic_id == topic_id)

	async def get_first_post(self, topic_id: UUID) -> models.Post | None:
		posts, _ = await self.list_topic_posts(topic_id, offset=0, limit=1)
		return posts[0] if posts else None

	async def update_post_content(self, post_id: UUID, content: str, *, mark_edited: bool = True):
		post = self.posts.get(post_id)
		if post is None:
			return None
		changes: dict[str, Any] = {"content": content}
		if mark_edited:
			changes.update(is_edited=True, last_edited_at=self._now())
		self.posts[post_id] = self._touch(post, **changes)
		return self.posts[post_id]

	async def count_replies_to(self, post_id: UUID) -> int:
		return sum(1 for post in self.posts.values() if post.reply_to == post_id)

	async def delete_reply(self, post: models.Post) -> None:
		self.posts.pop(post.id, None)
		topic = self.topics.get(post.topic_id)
		if topic is None:
			return
		topic = topic.model_copy(update={"reply_count": max(topic.reply_count - 1, 0)})
		if topic.last_post_id == post.id:
			latest = self._latest_post(post.topic_id)
			topic = topic.model_copy(
				update={
					"last_post_id": latest.id if latest else topic.id,
					"last_post_at": latest.created_at if latest else topic.created_at,
				}
			)
		self.topics[post.topic_id] = topic

	async def toggle_like(self, post_id: UUID, user_id: UUID):
		post = self.posts.get(post_id)
		if post is None:
			return None
		if user_id in post.likes:
			likes, liked = [uid for uid in post.likes if uid != user_id], False
		else:
			likes, liked = [*post.likes, user_id], True
		self.posts[post_id] = post.model_copy(update={"likes": likes})
		return self.posts[post_id], liked

	# --- Notifications -------------------------------------------------------

	async def insert_notification(
		self,
		*,
		user_id,
		actor_id,
		type,
		title,
		message,
		target_url=None,
		topic_id=None,
		post_id=None,
	) -> models.Notification:
		self._check("insert_notification")
		now = self._now()
		notification = models.Notification(
			id=uuid4(),
			user_id=user_id,
			actor_id=actor_id,
			type=models.NotificationType(type),
			title=title,
			message=message,
			target_url=target_url,
			topic_id=topic_id,
			post_id=post_id,
			created_at=now,
			updated_at=now,
		)
		self.notifications[notification.id] = notification
		return notification

	def _feed(self, user_id: UUID) -> list[models.Notification]:
		return sorted(
			(item for item in self.notifications.values() if item.user_id == user_id),
			key=lambda item: (item.created_at, str(item.id)),
			reverse=True,
		)

	async def list_notifications(self, user_id: UUID, *, offset: int, limit: int):
		return self._feed(user_id)[offset : offset + limit]

	async def count_notifications(self, user_id: UUID, *, unread_only: bool = False) -> int:
		return sum(1 for item in self._feed(user_id) if not unread_only or not item.read)

	async def mark_notifications_read(self, user_id: UUID, ids: Optional[Sequence[UUID]] = None) -> int:
		wanted = set(ids) if ids else None
		changed = 0
		for item in self._feed(user_id):
			if item.read or (wanted is not None and item.id not in wanted):
				continue
			self.notifications[item.id] = item.model_copy(update={"read": True})
			changed += 1
		return changed

	async def delete_notification(self, user_id: UUID, notification_id: UUID) -> int:
		item = self.notifications.get(notification_id)
		if item is None or item.user_id != user_id:
			return 0
		del self.notifications[notification_id]
		return 1

	async def delete_all_notifications(self, user_id: UUID) -> int:
		ids = [item.id for item in self._feed(user_id)]
		for notification_id in ids:
			del self.notifications[notification_id]
		return len(ids)

	# --- Test helpers ----------------------------------------------------------

	def notifications_for(self, user_id: UUID) -> list[models.Notification]:
		return self._feed(user_id)


@pytest.fixture
def test_settings() -> Settings:
	return Settings(
		environment="test",
		obs_enabled=False,
		default_page_size=10,
		max_page_size=100,
	)


@pytest.fixture
def repo() -> FakeForumRepository:
	return FakeForumRepository()


@pytest.fixture
def services(repo, test_settings):
	return build_services(repo, settings=test_settings)


@pytest.fixture
def make_user(repo):
	async def _make(username: str, role: Role = Role.STUDENT, *, password: str = "secret123") -> AuthenticatedUser:
		user = await repo.create_user(
			username=username,
			email=f"{username}@example.com",
			password_hash=hash_password(password),
			display_name=username.title(),
			role=role.value,
			avatar=None,
		)
		return AuthenticatedUser(id=user.id, username=user.username, email=user.email, role=user.role)

	return _make


@pytest.fixture
def make_category(repo):
	async def _make(name: str = "General", *, parent: UUID | None = None) -> models.Category:
		return await repo.create_category(
			name=name,
			description=f"{name} discussions",
			slug=category_slug(name),
			order=0,
			parent_category=parent,
			created_by=None,
		)

	return _make


@pytest.fixture
def app(services, test_settings):
	return create_app(services=services, settings=test_settings)


@pytest_asyncio.fixture
async def api_client(app):
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


@pytest.fixture
def auth_header(services):
	def _header(user: AuthenticatedUser) -> dict[str, str]:
		token = services.users.issue_token(
			models.User(
				id=user.id,
				username=user.username,
				email=user.email,
				password_hash="",
				display_name=user.username,
				role=user.role,
				created_at=_EPOCH,
				updated_at=_EPOCH,
			)
		)
		return {"Authorization": f"Bearer {token}"}

	return _header
