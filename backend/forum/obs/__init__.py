"""Observability bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from forum.obs import logging as obs_logging
from forum.obs import middleware
from forum.settings import Settings, settings as default_settings


def init(app: FastAPI, *, settings: Settings | None = None) -> None:
	"""Configure JSON logging and install request instrumentation on ``app``."""
	cfg = settings or default_settings
	if not cfg.obs_enabled:
		return
	obs_logging.configure_logging()
	middleware.install(app)


__all__ = ["init"]
