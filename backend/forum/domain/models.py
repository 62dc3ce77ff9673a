"""Domain models for forum entities."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from forum.domain.roles import Role


class NotificationType(str, Enum):
	REPLY = "reply"
	MENTION = "mention"
	LIKE = "like"
	TOPIC_REPLY = "topic_reply"
	SYSTEM = "system"
	ROLE_CHANGE = "role_change"


class NotificationSettings(BaseModel):
	"""Per-user notification preferences; every flag defaults to enabled."""

	email_notifications: bool = True
	site_notifications: bool = True
	notify_on_replies: bool = True
	notify_on_mentions: bool = True
	notify_on_likes: bool = True
	notify_on_topic_replies: bool = True
	notify_on_role_changes: bool = True

	model_config = ConfigDict(from_attributes=True)

	def allows(self, type: NotificationType) -> bool:
		if not self.site_notifications:
			return False
		flag = _TYPE_FLAGS.get(type)
		if flag is None:
			return True
		return bool(getattr(self, flag))


_TYPE_FLAGS = {
	NotificationType.REPLY: "notify_on_replies",
	NotificationType.MENTION: "notify_on_mentions",
	NotificationType.LIKE: "notify_on_likes",
	NotificationType.TOPIC_REPLY: "notify_on_topic_replies",
	NotificationType.ROLE_CHANGE: "notify_on_role_changes",
}


class User(BaseModel):
	"""Registered account. ``password_hash`` never leaves the service layer."""

	id: UUID
	username: str
	email: str
	password_hash: str
	display_name: str
	role: Role = Role.STUDENT
	avatar: Optional[str] = None
	bio: str = ""
	created_at: datetime
	updated_at: datetime
	last_active: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)


class Category(BaseModel):
	id: UUID
	name: str
	description: str
	slug: str
	order: int = 0
	is_active: bool = True
	parent_category: Optional[UUID] = None
	created_by: Optional[UUID] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class Topic(BaseModel):
	"""A discussion thread.

	``reply_count`` and ``last_post_id``/``last_post_at`` are denormalized from
	the posts table and maintained by the repository on post create/delete.
	"""

	id: UUID
	title: str
	content: str
	slug: str
	category_id: UUID
	author_id: UUID
	tags: list[str] = Field(default_factory=list)
	view_count: int = 0
	reply_count: int = 0
	is_pinned: bool = False
	is_locked: bool = False
	last_post_id: Optional[UUID] = None
	last_post_at: Optional[datetime] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class Post(BaseModel):
	id: UUID
	content: str
	topic_id: UUID
	author_id: UUID
	reply_to: Optional[UUID] = None
	is_edited: bool = False
	likes: list[UUID] = Field(default_factory=list)
	created_at: datetime
	updated_at: datetime
	last_edited_at: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)


class Notification(BaseModel):
	id: UUID
	user_id: UUID
	actor_id: Optional[UUID] = None
	type: NotificationType
	title: str
	message: str
	read: bool = False
	target_url: Optional[str] = None
	topic_id: Optional[UUID] = None
	post_id: Optional[UUID] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)
