"""Session token helpers.

Uses HS256 with the application's secret key. Tokens carry the user's id,
username, email and role and are valid for ``token_ttl_hours``.
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from forum.settings import Settings, settings as default_settings


ISSUER = "forum-api"
AUDIENCE = "forum-web"
REQUIRED_CLAIMS = ("sub", "username", "role")


def encode_access(payload: dict[str, object], *, settings: Settings | None = None) -> str:
	"""Encode a session token with issuer/audience and expiry defaults."""
	cfg = settings or default_settings
	now = int(time.time())
	body: Dict[str, Any] = {
		"iss": ISSUER,
		"aud": AUDIENCE,
		"iat": now,
		"exp": now + cfg.token_ttl_hours * 3600,
	}
	body.update(payload)
	return jwt.encode(body, cfg.secret_key, algorithm="HS256")


def decode_access(token: str, *, settings: Settings | None = None) -> dict[str, object]:
	"""Decode and validate a session token.

	Raises jwt.InvalidTokenError subclasses on failure.
	"""
	cfg = settings or default_settings
	payload = jwt.decode(
		token,
		cfg.secret_key,
		algorithms=["HS256"],
		audience=AUDIENCE,
		issuer=ISSUER,
		leeway=5,
		options={"require": ["exp", "iat", "iss", "aud"]},
	)
	for claim in REQUIRED_CLAIMS:
		if not payload.get(claim):
			raise InvalidTokenError(f"missing_claim:{claim}")
	return payload  # type: ignore[return-value]
