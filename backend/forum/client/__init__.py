"""Async client state layer for the forum API."""

from forum.client.api import ForumAPI, ForumAPIError
from forum.client.notifications import NotificationFeed
from forum.client.session import AuthSession, SessionUser
from forum.client.storage import SessionStorage
from forum.client.theme import ThemePreference

__all__ = [
	"AuthSession",
	"ForumAPI",
	"ForumAPIError",
	"NotificationFeed",
	"SessionStorage",
	"SessionUser",
	"ThemePreference",
]
