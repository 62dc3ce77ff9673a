"""Async repository for forum documents, backed by asyncpg."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Sequence
from uuid import UUID, uuid4

import asyncpg

from forum.domain import models
from forum.domain.exceptions import ConflictError
from forum.infra.postgres import Database

_USER_CONFLICTS = {
	"users_username_key": "Username already exists",
	"users_email_key": "Email already exists",
}

_USER_COLUMNS = {"username", "email", "password_hash", "display_name", "role", "avatar", "bio", "last_active"}
_CATEGORY_COLUMNS = {"name", "description", "slug", "order", "is_active", "parent_category"}
_TOPIC_COLUMNS = {"title", "content", "slug", "tags", "is_pinned", "is_locked"}
_SETTINGS_COLUMNS = tuple(models.NotificationSettings.model_fields)


def _build_set_clause(fields: dict[str, Any], allowed: Iterable[str], *, start: int = 2) -> tuple[str, list[Any]]:
	allowed_set = set(allowed)
	clauses: list[str] = []
	values: list[Any] = []
	for key, value in fields.items():
		if key not in allowed_set:
			raise ValueError(f"unknown_column:{key}")
		clauses.append(f'"{key}"=${len(values) + start}')
		values.append(value.value if isinstance(value, Enum) else value)
	clauses.append("updated_at=NOW()")
	return ", ".join(clauses), values


class ForumRepository:
	"""Thin data-access layer around asyncpg.

	Multi-row sequences that must stay consistent (reply insert plus topic
	counters, reply delete plus last-post relink, topic cascade) run inside a
	single transaction.
	"""

	def __init__(self, database: Database) -> None:
		self.db = database

	# --- Users -------------------------------------------------------------

	async def create_user(
		self,
		*,
		username: str,
		email: str,
		password_hash: str,
		display_name: str,
		role: str,
		avatar: str | None,
	) -> models.User:
		async with self.db.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO users (id, username, email, password_hash, display_name, role, avatar, last_active)
					VALUES ($1, $2, $3, $4, $5, $6, $7, NOW())
					RETURNING *
					""",
					uuid4(),
					username,
					email,
					password_hash,
					display_name,
					role,
					avatar,
				)
			except asyncpg.UniqueViolationError as exc:
				raise ConflictError(_USER_CONFLICTS.get(exc.constraint_name or "", "User already exists")) from exc
		return models.User.model_validate(dict(record))

	async def get_user(self, user_id: UUID) -> models.User | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM users WHERE id=$1", user_id)
		return models.User.model_validate(dict(record)) if record else None

	async def get_user_by_username(self, username: str) -> models.User | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM users WHERE username=$1", username)
		return models.User.model_validate(dict(record)) if record else None

	async def get_user_by_email(self, email: str) -> models.User | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM users WHERE email=$1", email)
		return models.User.model_validate(dict(record)) if record else None

	async def find_user_by_login(self, identifier: str) -> models.User | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM users WHERE username=$1 OR email=$1 ORDER BY (username=$1) DESC LIMIT 1",
				identifier,
			)
		return models.User.model_validate(dict(record)) if record else None

	async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, models.User]:
		ids = list({uid for uid in user_ids if uid is not None})
		if not ids:
			return {}
		async with self.db.acquire() as conn:
			rows = await conn.fetch("SELECT * FROM users WHERE id = ANY($1::uuid[])", ids)
		users = [models.User.model_validate(dict(row)) for row in rows]
		return {user.id: user for user in users}

	async def list_users(self) -> list[models.User]:
		async with self.db.acquire() as conn:
			rows = await conn.fetch("SELECT * FROM users ORDER BY created_at ASC")
		return [models.User.model_validate(dict(row)) for row in rows]

	async def list_users_page(self, *, offset: int, limit: int) -> tuple[list[models.User], int]:
		async with self.db.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM users ORDER BY created_at ASC OFFSET $1 LIMIT $2",
				offset,
				limit,
			)
			total = await conn.fetchval("SELECT COUNT(*) FROM users")
		return [models.User.model_validate(dict(row)) for row in rows], int(total or 0)

	async def update_user(self, user_id: UUID, **fields: Any) -> models.User | None:
		if not fields:
			return await self.get_user(user_id)
		clause, values = _build_set_clause(fields, _USER_COLUMNS)
		async with self.db.acquire() as conn:
			try:
				record = await conn.fetchrow(
					f"UPDATE users SET {clause} WHERE id=$1 RETURNING *",
					user_id,
					*values,
				)
			except asyncpg.UniqueViolationError as exc:
				raise ConflictError(_USER_CONFLICTS.get(exc.constraint_name or "", "User already exists")) from exc
		return models.User.model_validate(dict(record)) if record else None

	async def count_user_content(self, user_id: UUID) -> tuple[int, int]:
		async with self.db.acquire() as conn:
			topics = await conn.fetchval("SELECT COUNT(*) FROM topics WHERE author_id=$1", user_id)
			posts = await conn.fetchval("SELECT COUNT(*) FROM posts WHERE author_id=$1", user_id)
		return int(topics or 0), int(posts or 0)

	# --- Notification settings ----------------------------------------------

	async def get_notification_settings(self, user_id: UUID) -> models.NotificationSettings | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM notification_settings WHERE user_id=$1", user_id)
		if not record:
			return None
		return models.NotificationSettings.model_validate({key: record[key] for key in _SETTINGS_COLUMNS})

	async def upsert_notification_settings(
		self,
		user_id: UUID,
		settings: models.NotificationSettings,
	) -> models.NotificationSettings:
		values = [getattr(settings, key) for key in _SETTINGS_COLUMNS]
		columns = ", ".join(_SETTINGS_COLUMNS)
		placeholders = ", ".join(f"${idx + 2}" for idx in range(len(_SETTINGS_COLUMNS)))
		updates = ", ".join(f"{key}=EXCLUDED.{key}" for key in _SETTINGS_COLUMNS)
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				f"""
				INSERT INTO notification_settings (user_id, {columns})
				VALUES ($1, {placeholders})
				ON CONFLICT (user_id) DO UPDATE SET {updates}, updated_at=NOW()
				RETURNING *
				""",
				user_id,
				*values,
			)
		return models.NotificationSettings.model_validate({key: record[key] for key in _SETTINGS_COLUMNS})

	# --- Categories ----------------------------------------------------------

	async def create_category(
		self,
		*,
		name: str,
		description: str,
		slug: str,
		order: int,
		parent_category: UUID | None,
		created_by: UUID | None,
	) -> models.Category:
		async with self.db.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO categories (id, name, description, slug, "order", parent_category, created_by)
					VALUES ($1, $2, $3, $4, $5, $6, $7)
					RETURNING *
					""",
					uuid4(),
					name,
					description,
					slug,
					order,
					parent_category,
					created_by,
				)
			except asyncpg.UniqueViolationError as exc:
				raise ConflictError("A category with this name already exists") from exc
		return models.Category.model_validate(dict(record))

	async def get_category(self, category_id: UUID) -> models.Category | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM categories WHERE id=$1", category_id)
		return models.Category.model_validate(dict(record)) if record else None

	async def get_category_by_slug(self, slug: str) -> models.Category | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM categories WHERE slug=$1", slug)
		return models.Category.model_validate(dict(record)) if record else None

	async def list_categories(self) -> list[models.Category]:
		async with self.db.acquire() as conn:
			rows = await conn.fetch('SELECT * FROM categories ORDER BY "order" ASC, name ASC')
		return [models.Category.model_validate(dict(row)) for row in rows]

	async def list_child_categories(self, parent_id: UUID) -> list[models.Category]:
		async with self.db.acquire() as conn:
			rows = await conn.fetch(
				'SELECT * FROM categories WHERE parent_category=$1 ORDER BY "order" ASC, name ASC',
				parent_id,
			)
		return [models.Category.model_validate(dict(row)) for row in rows]

	async def update_category(self, category_id: UUID, **fields: Any) -> models.Category | None:
		if not fields:
			return await self.get_category(category_id)
		clause, values = _build_set_clause(fields, _CATEGORY_COLUMNS)
		async with self.db.acquire() as conn:
			try:
				record = await conn.fetchrow(
					f"UPDATE categories SET {clause} WHERE id=$1 RETURNING *",
					category_id,
					*values,
				)
			except asyncpg.UniqueViolationError as exc:
				raise ConflictError("A category with this name already exists") from exc
		return models.Category.model_validate(dict(record)) if record else None

	async def count_child_categories(self, category_id: UUID) -> int:
		async with self.db.acquire() as conn:
			count = await conn.fetchval("SELECT COUNT(*) FROM categories WHERE parent_category=$1", category_id)
		return int(count or 0)

	async def count_category_topics(self, category_id: UUID) -> int:
		async with self.db.acquire() as conn:
			count = await conn.fetchval("SELECT COUNT(*) FROM topics WHERE category_id=$1", category_id)
		return int(count or 0)

	async def delete_category(self, category_id: UUID) -> bool:
		async with self.db.acquire() as conn:
			result = await conn.execute("DELETE FROM categories WHERE id=$1", category_id)
		return result.endswith(" 1")

	# --- Topics --------------------------------------------------------------

	async def create_topic(
		self,
		*,
		title: str,
		content: str,
		slug: str,
		category_id: UUID,
		author_id: UUID,
		tags: Sequence[str],
	) -> models.Topic:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO topics (id, title, content, slug, category_id, author_id, tags)
				VALUES ($1, $2, $3, $4, $5, $6, $7)
				RETURNING *
				""",
				uuid4(),
				title,
				content,
				slug,
				category_id,
				author_id,
				list(tags),
			)
		return models.Topic.model_validate(dict(record))

	async def get_topic(self, topic_id: UUID) -> models.Topic | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM topics WHERE id=$1", topic_id)
		return models.Topic.model_validate(dict(record)) if record else None

	async def get_topic_by_slug(self, slug: str) -> models.Topic | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM topics WHERE slug=$1", slug)
		return models.Topic.model_validate(dict(record)) if record else None

	async def get_topics(self, topic_ids: Iterable[UUID]) -> dict[UUID, models.Topic]:
		ids = list({tid for tid in topic_ids if tid is not None})
		if not ids:
			return {}
		async with self.db.acquire() as conn:
			rows = await conn.fetch("SELECT * FROM topics WHERE id = ANY($1::uuid[])", ids)
		topics = [models.Topic.model_validate(dict(row)) for row in rows]
		return {topic.id: topic for topic in topics}

	async def increment_topic_views(self, topic_id: UUID) -> models.Topic | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				"UPDATE topics SET view_count = view_count + 1 WHERE id=$1 RETURNING *",
				topic_id,
			)
		return models.Topic.model_validate(dict(record)) if record else None

	async def list_latest_topics(self, *, offset: int, limit: int) -> tuple[list[models.Topic], int]:
		async with self.db.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM topics
				ORDER BY COALESCE(last_post_at, created_at) DESC, id DESC
				OFFSET $1 LIMIT $2
				""",
				offset,
				limit,
			)
			total = await conn.fetchval("SELECT COUNT(*) FROM topics")
		return [models.Topic.model_validate(dict(row)) for row in rows], int(total or 0)

	async def list_category_topics(
		self,
		category_id: UUID,
		*,
		offset: int = 0,
		limit: int | None = None,
	) -> tuple[list[models.Topic], int]:
		async with self.db.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM topics
				WHERE category_id=$1
				ORDER BY is_pinned DESC, COALESCE(last_post_at, created_at) DESC, id DESC
				OFFSET $2 LIMIT $3
				""",
				category_id,
				offset,
				limit,
			)
			total = await conn.fetchval("SELECT COUNT(*) FROM topics WHERE category_id=$1", category_id)
		return [models.Topic.model_validate(dict(row)) for row in rows], int(total or 0)

	async def update_topic(self, topic_id: UUID, **fields: Any) -> models.Topic | None:
		if not fields:
			return await self.get_topic(topic_id)
		if "tags" in fields:
			fields["tags"] = list(fields["tags"])
		clause, values = _build_set_clause(fields, _TOPIC_COLUMNS)
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				f"UPDATE topics SET {clause} WHERE id=$1 RETURNING *",
				topic_id,
				*values,
			)
		return models.Topic.model_validate(dict(record)) if record else None

	async def set_topic_last_post(self, topic_id: UUID, post_id: UUID, at: datetime) -> models.Topic | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				"UPDATE topics SET last_post_id=$2, last_post_at=$3 WHERE id=$1 RETURNING *",
				topic_id,
				post_id,
				at,
			)
		return models.Topic.model_validate(dict(record)) if record else None

	async def delete_topic(self, topic_id: UUID) -> bool:
		"""Delete a topic and every post in it."""
		async with self.db.transaction() as conn:
			await conn.execute("DELETE FROM posts WHERE topic_id=$1", topic_id)
			result = await conn.execute("DELETE FROM topics WHERE id=$1", topic_id)
		return result.endswith(" 1")

	async def list_topic_ids(self) -> list[UUID]:
		async with self.db.acquire() as conn:
			rows = await conn.fetch("SELECT id FROM topics ORDER BY created_at ASC")
		return [row["id"] for row in rows]

	async def reconcile_topic(self, topic_id: UUID) -> tuple[models.Topic, models.Topic] | None:
		"""Recompute denormalized counters from the posts table.

		Returns ``(before, after)`` or None when the topic is gone.
		"""
		async with self.db.transaction() as conn:
			before = await conn.fetchrow("SELECT * FROM topics WHERE id=$1 FOR UPDATE", topic_id)
			if not before:
				return None
			total = await conn.fetchval("SELECT COUNT(*) FROM posts WHERE topic_id=$1", topic_id)
			latest = await conn.fetchrow(
				"SELECT id, created_at FROM posts WHERE topic_id=$1 ORDER BY created_at DESC, id DESC LIMIT 1",
				topic_id,
			)
			last_id = latest["id"] if latest else before["id"]
			last_at = latest["created_at"] if latest else before["created_at"]
			after = await conn.fetchrow(
				"""
				UPDATE topics SET reply_count=$2, last_post_id=$3, last_post_at=$4
				WHERE id=$1
				RETURNING *
				""",
				topic_id,
				max(int(total or 0) - 1, 0),
				last_id,
				last_at,
			)
		return models.Topic.model_validate(dict(before)), models.Topic.model_validate(dict(after))

	# --- Posts ---------------------------------------------------------------

	async def create_post(
		self,
		*,
		topic_id: UUID,
		author_id: UUID,
		content: str,
		reply_to: UUID | None = None,
	) -> models.Post:
		"""Insert a post without touching topic counters (used for a topic's first post)."""
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO posts (id, content, topic_id, author_id, reply_to)
				VALUES ($1, $2, $3, $4, $5)
				RETURNING *
				""",
				uuid4(),
				content,
				topic_id,
				author_id,
				reply_to,
			)
		return models.Post.model_validate(dict(record))

	async def create_reply(
		self,
		*,
		topic_id: UUID,
		author_id: UUID,
		content: str,
		reply_to: UUID | None = None,
	) -> models.Post:
		"""Insert a reply and bump the topic's reply counter and last-post pointer."""
		async with self.db.transaction() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO posts (id, content, topic_id, author_id, reply_to)
				VALUES ($1, $2, $3, $4, $5)
				RETURNING *
				""",
				uuid4(),
				content,
				topic_id,
				author_id,
				reply_to,
			)
			await conn.execute(
				"""
				UPDATE topics
				SET reply_count = reply_count + 1, last_post_id=$2, last_post_at=$3
				WHERE id=$1
				""",
				topic_id,
				record["id"],
				record["created_at"],
			)
		return models.Post.model_validate(dict(record))

	async def get_post(self, post_id: UUID) -> models.Post | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM posts WHERE id=$1", post_id)
		return models.Post.model_validate(dict(record)) if record else None

	async def get_posts(self, post_ids: Iterable[UUID]) -> dict[UUID, models.Post]:
		ids = list({pid for pid in post_ids if pid is not None})
		if not ids:
			return {}
		async with self.db.acquire() as conn:
			rows = await conn.fetch("SELECT * FROM posts WHERE id = ANY($1::uuid[])", ids)
		posts = [models.Post.model_validate(dict(row)) for row in rows]
		return {post.id: post for post in posts}

	async def list_topic_posts(self, topic_id: UUID, *, offset: int, limit: int) -> tuple[list[models.Post], int]:
		async with self.db.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM posts WHERE topic_id=$1
				ORDER BY created_at ASC, id ASC
				OFFSET $2 LIMIT $3
				""",
				topic_id,
				offset,
				limit,
			)
			total = await conn.fetchval("SELECT COUNT(*) FROM posts WHERE topic_id=$1", topic_id)
		return [models.Post.model_validate(dict(row)) for row in rows], int(total or 0)

	async def count_topic_posts(self, topic_id: UUID) -> int:
		async with self.db.acquire() as conn:
			count = await conn.fetchval("SELECT COUNT(*) FROM posts WHERE topic_id=$1", topic_id)
		return int(count or 0)

	async def get_first_post(self, topic_id: UUID) -> models.Post | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM posts WHERE topic_id=$1 ORDER BY created_at ASC, id ASC LIMIT 1",
				topic_id,
			)
		return models.Post.model_validate(dict(record)) if record else None

	async def update_post_content(self, post_id: UUID, content: str, *, mark_edited: bool = True) -> models.Post | None:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE posts
				SET content=$2,
					is_edited = is_edited OR $3,
					last_edited_at = CASE WHEN $3 THEN NOW() ELSE last_edited_at END,
					updated_at=NOW()
				WHERE id=$1
				RETURNING *
				""",
				post_id,
				content,
				mark_edited,
			)
		return models.Post.model_validate(dict(record)) if record else None

	async def count_replies_to(self, post_id: UUID) -> int:
		async with self.db.acquire() as conn:
			count = await conn.fetchval("SELECT COUNT(*) FROM posts WHERE reply_to=$1", post_id)
		return int(count or 0)

	async def delete_reply(self, post: models.Post) -> None:
		"""Hard-delete a post, decrement its topic's counter and relink the last post."""
		async with self.db.transaction() as conn:
			await conn.execute("DELETE FROM posts WHERE id=$1", post.id)
			topic = await conn.fetchrow(
				"""
				UPDATE topics SET reply_count = GREATEST(reply_count - 1, 0)
				WHERE id=$1
				RETURNING id, created_at, last_post_id
				""",
				post.topic_id,
			)
			if topic is None or topic["last_post_id"] != post.id:
				return
			latest = await conn.fetchrow(
				"SELECT id, created_at FROM posts WHERE topic_id=$1 ORDER BY created_at DESC, id DESC LIMIT 1",
				post.topic_id,
			)
			if latest:
				last_id, last_at = latest["id"], latest["created_at"]
			else:
				last_id, last_at = topic["id"], topic["created_at"]
			await conn.execute(
				"UPDATE topics SET last_post_id=$2, last_post_at=$3 WHERE id=$1",
				post.topic_id,
				last_id,
				last_at,
			)

	async def toggle_like(self, post_id: UUID, user_id: UUID) -> tuple[models.Post, bool] | None:
		"""Add ``user_id`` to the post's likes, or remove it if already present.

		Returns the updated post and whether it is now liked.
		"""
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE posts SET likes = array_append(likes, $2)
				WHERE id=$1 AND NOT ($2 = ANY(likes))
				RETURNING *
				""",
				post_id,
				user_id,
			)
			if record:
				return models.Post.model_validate(dict(record)), True
			record = await conn.fetchrow(
				"UPDATE posts SET likes = array_remove(likes, $2) WHERE id=$1 RETURNING *",
				post_id,
				user_id,
			)
		if not record:
			return None
		return models.Post.model_validate(dict(record)), False

	# --- Notifications -------------------------------------------------------

	async def insert_notification(
		self,
		*,
		user_id: UUID,
		actor_id: UUID | None,
		type: models.NotificationType,
		title: str,
		message: str,
		target_url: str | None = None,
		topic_id: UUID | None = None,
		post_id: UUID | None = None,
	) -> models.Notification:
		async with self.db.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO notifications (id, user_id, actor_id, type, title, message, target_url, topic_id, post_id)
				VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
				RETURNING *
				""",
				uuid4(),
				user_id,
				actor_id,
				models.NotificationType(type).value,
				title,
				message,
				target_url,
				topic_id,
				post_id,
			)
		return models.Notification.model_validate(dict(record))

	async def list_notifications(self, user_id: UUID, *, offset: int, limit: int) -> list[models.Notification]:
		async with self.db.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM notifications WHERE user_id=$1
				ORDER BY created_at DESC, id DESC
				OFFSET $2 LIMIT $3
				""",
				user_id,
				offset,
				limit,
			)
		return [models.Notification.model_validate(dict(row)) for row in rows]

	async def count_notifications(self, user_id: UUID, *, unread_only: bool = False) -> int:
		query = "SELECT COUNT(*) FROM notifications WHERE user_id=$1"
		if unread_only:
			query += " AND read = FALSE"
		async with self.db.acquire() as conn:
			count = await conn.fetchval(query, user_id)
		return int(count or 0)

	async def mark_notifications_read(self, user_id: UUID, ids: Optional[Sequence[UUID]] = None) -> int:
		"""Flip unread rows to read; returns how many rows actually changed."""
		async with self.db.acquire() as conn:
			if ids:
				result = await conn.execute(
					"""
					UPDATE notifications SET read = TRUE, updated_at = NOW()
					WHERE user_id=$1 AND read = FALSE AND id = ANY($2::uuid[])
					""",
					user_id,
					list(ids),
				)
			else:
				result = await conn.execute(
					"UPDATE notifications SET read = TRUE, updated_at = NOW() WHERE user_id=$1 AND read = FALSE",
					user_id,
				)
		return _affected(result)

	async def delete_notification(self, user_id: UUID, notification_id: UUID) -> int:
		async with self.db.acquire() as conn:
			result = await conn.execute(
				"DELETE FROM notifications WHERE id=$1 AND user_id=$2",
				notification_id,
				user_id,
			)
		return _affected(result)

	async def delete_all_notifications(self, user_id: UUID) -> int:
		async with self.db.acquire() as conn:
			result = await conn.execute("DELETE FROM notifications WHERE user_id=$1", user_id)
		return _affected(result)


def _affected(status: str) -> int:
	try:
		return int(status.rsplit(" ", 1)[-1])
	except (ValueError, IndexError):
		return 0
