"""Pydantic schemas for the forum HTTP API.

Every schema serializes with camelCase keys and accepts either camelCase or
snake_case on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from forum.domain.models import NotificationType
from forum.domain.roles import Role


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(CamelModel):
	message: str


class PaginationResponse(CamelModel):
	current_page: int
	total_pages: int
	total_items: int
	has_more: bool


# --- Users ------------------------------------------------------------------


class UserSummary(CamelModel):
	"""Author/actor projection joined into other resources."""

	id: UUID
	username: str
	display_name: str
	avatar: Optional[str] = None
	role: Role


class UserResponse(CamelModel):
	id: UUID
	username: str
	email: str
	display_name: str
	role: Role
	avatar: Optional[str] = None
	bio: str = ""
	created_at: datetime
	updated_at: datetime
	last_active: Optional[datetime] = None


class PublicUserResponse(CamelModel):
	id: UUID
	username: str
	display_name: str
	role: Role
	avatar: Optional[str] = None
	bio: str = ""
	created_at: datetime
	topic_count: Optional[int] = None
	post_count: Optional[int] = None


class PublicUserListResponse(CamelModel):
	items: List[PublicUserResponse]
	pagination: PaginationResponse


class UserListResponse(CamelModel):
	items: List[UserResponse]


class RegisterRequest(CamelModel):
	username: str = Field(..., min_length=3, max_length=32, pattern=r"^\w+$")
	email: EmailStr
	password: str = Field(..., min_length=6, max_length=128)
	display_name: str = Field(..., min_length=1, max_length=80)


class LoginRequest(CamelModel):
	username: str = Field(..., min_length=1, description="Username or email")
	password: str = Field(..., min_length=1)


class AuthResponse(CamelModel):
	message: str
	user: UserResponse
	token: str


class CurrentUserResponse(CamelModel):
	user: UserResponse


class TokenResponse(CamelModel):
	token: str
	user: UserResponse


class ProfileUpdateRequest(CamelModel):
	username: Optional[str] = Field(default=None, min_length=3, max_length=32, pattern=r"^\w+$")
	email: Optional[EmailStr] = None
	display_name: Optional[str] = Field(default=None, min_length=1, max_length=80)
	bio: Optional[str] = Field(default=None, max_length=2000)
	avatar: Optional[str] = Field(default=None, max_length=512)


class ProfileResponse(CamelModel):
	message: str
	user: UserResponse


class PasswordChangeRequest(CamelModel):
	current_password: str = Field(..., min_length=1)
	new_password: str = Field(..., min_length=6, max_length=128)


class RoleUpdateRequest(CamelModel):
	role: str


class RoleUpdateResponse(CamelModel):
	message: str
	user: UserResponse


# --- Notification settings --------------------------------------------------


class NotificationSettingsResponse(CamelModel):
	email_notifications: bool = True
	site_notifications: bool = True
	notify_on_replies: bool = True
	notify_on_mentions: bool = True
	notify_on_likes: bool = True
	notify_on_topic_replies: bool = True
	notify_on_role_changes: bool = True


class NotificationSettingsUpdate(CamelModel):
	email_notifications: Optional[bool] = None
	site_notifications: Optional[bool] = None
	notify_on_replies: Optional[bool] = None
	notify_on_mentions: Optional[bool] = None
	notify_on_likes: Optional[bool] = None
	notify_on_topic_replies: Optional[bool] = None
	notify_on_role_changes: Optional[bool] = None


# --- Categories -------------------------------------------------------------


class CategoryCreateRequest(CamelModel):
	name: str = Field(..., min_length=1, max_length=80)
	description: str = Field(..., min_length=1, max_length=2000)
	order: int = 0
	parent_category: Optional[UUID] = None


class CategoryUpdateRequest(CamelModel):
	name: Optional[str] = Field(default=None, min_length=1, max_length=80)
	description: Optional[str] = Field(default=None, max_length=2000)
	order: Optional[int] = None
	is_active: Optional[bool] = None
	parent_category: Optional[UUID] = None


class CategoryResponse(CamelModel):
	id: UUID
	name: str
	description: str
	slug: str
	order: int
	is_active: bool
	parent_category: Optional[UUID] = None
	created_by: Optional[UUID] = None
	created_at: datetime
	updated_at: datetime


class CategoryMutationResponse(CamelModel):
	message: str
	category: CategoryResponse


# --- Posts ------------------------------------------------------------------


class PostResponse(CamelModel):
	id: UUID
	content: str
	topic_id: UUID
	author_id: UUID
	reply_to: Optional[UUID] = None
	is_edited: bool
	likes: List[UUID] = Field(default_factory=list)
	created_at: datetime
	updated_at: datetime
	last_edited_at: Optional[datetime] = None
	author: Optional[UserSummary] = None


class PostDetailResponse(PostResponse):
	reply_to_post: Optional[PostResponse] = None


class PostCreateRequest(CamelModel):
	content: str = Field(..., min_length=1)
	topic_id: str = Field(..., min_length=1)
	reply_to: Optional[str] = None


class PostUpdateRequest(CamelModel):
	content: str = Field(..., min_length=1)


class PostMutationResponse(CamelModel):
	message: str
	post: PostDetailResponse


class PostListResponse(CamelModel):
	items: List[PostDetailResponse]
	pagination: PaginationResponse


class LikeResponse(CamelModel):
	message: str
	post: PostResponse
	liked: bool


# --- Topics -----------------------------------------------------------------


class TopicResponse(CamelModel):
	id: UUID
	title: str
	content: str
	slug: str
	category_id: UUID
	author_id: UUID
	tags: List[str] = Field(default_factory=list)
	view_count: int
	reply_count: int
	is_pinned: bool
	is_locked: bool
	last_post_id: Optional[UUID] = None
	last_post_at: Optional[datetime] = None
	created_at: datetime
	updated_at: datetime
	author: Optional[UserSummary] = None


class TopicListItem(TopicResponse):
	last_post: Optional[PostResponse] = None
	post_count: Optional[int] = None


class TopicDetail(TopicResponse):
	category: Optional[CategoryResponse] = None
	posts_count: int = 0


class TopicDetailResponse(CamelModel):
	topic: TopicDetail


class TopicListResponse(CamelModel):
	items: List[TopicListItem]
	pagination: PaginationResponse


class TopicCreateRequest(CamelModel):
	title: str = Field(..., min_length=1, max_length=200)
	content: str = Field(..., min_length=1)
	category_id: str = Field(..., min_length=1)
	tags: List[str] = Field(default_factory=list, max_length=20)


class TopicUpdateRequest(CamelModel):
	title: Optional[str] = Field(default=None, min_length=1, max_length=200)
	content: Optional[str] = Field(default=None, min_length=1)
	tags: Optional[List[str]] = Field(default=None, max_length=20)
	is_pinned: Optional[bool] = None
	is_locked: Optional[bool] = None


class TopicCreateResponse(CamelModel):
	message: str
	topic: TopicResponse
	post: PostResponse


class TopicMutationResponse(CamelModel):
	message: str
	topic: TopicResponse


class CategoryDetailResponse(CategoryResponse):
	children: List[CategoryResponse] = Field(default_factory=list)
	topics: List[TopicListItem] = Field(default_factory=list)


# --- Notifications ----------------------------------------------------------


class NotificationActor(CamelModel):
	id: UUID
	username: str
	avatar: Optional[str] = None


class NotificationResponse(CamelModel):
	id: UUID
	user_id: UUID
	type: NotificationType
	title: str
	message: str
	read: bool
	target_url: Optional[str] = None
	topic_id: Optional[UUID] = None
	post_id: Optional[UUID] = None
	created_at: datetime
	actor: Optional[NotificationActor] = None


class NotificationFeedResponse(CamelModel):
	notifications: List[NotificationResponse]
	total_notifications: int
	unread_count: int
	current_page: int
	total_pages: int


class MarkReadRequest(CamelModel):
	notification_ids: Optional[List[UUID]] = None


class MarkReadResponse(CamelModel):
	message: str
	modified_count: int


class DeleteAllResponse(CamelModel):
	message: str
	deleted_count: int


# --- Maintenance ------------------------------------------------------------


class ReconcileResponse(CamelModel):
	message: str
	checked: int
	repaired: int
	repaired_topic_ids: List[UUID] = Field(default_factory=list)
