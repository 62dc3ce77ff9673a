"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forum.api import admin, auth, categories, notifications, ops, posts, topics, users
from forum.api.errors import install_error_handlers
from forum.api.middleware_request_id import RequestIdMiddleware
from forum.domain.repo import ForumRepository
from forum.domain.services import ForumServices, build_services
from forum.infra.postgres import Database
from forum.obs import init as obs_init
from forum.settings import Settings, settings as default_settings


def _allowed_origins(cfg: Settings) -> list[str]:
	origins = list(cfg.cors_allow_origins or [])
	if not origins or "*" in origins:
		return ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"] if not cfg.is_prod() else []
	return origins


def create_app(services: ForumServices | None = None, *, settings: Settings | None = None) -> FastAPI:
	"""Build the API.

	When ``services`` is given (tests), the lifespan leaves storage alone;
	otherwise it opens the Postgres pool and wires the services onto it.
	"""
	cfg = settings or default_settings

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		database: Database | None = None
		if getattr(app.state, "services", None) is None:
			database = Database.from_settings(cfg)
			await database.init()
			app.state.database = database
			app.state.services = build_services(ForumRepository(database), settings=cfg)
		try:
			yield
		finally:
			if database is not None:
				await database.close()

	app = FastAPI(title="Forum API", lifespan=lifespan)
	app.state.services = services
	install_error_handlers(app)

	app.add_middleware(
		CORSMiddleware,
		allow_origins=_allowed_origins(cfg),
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	obs_init(app, settings=cfg)
	app.add_middleware(RequestIdMiddleware)

	app.include_router(auth.router)
	app.include_router(users.router)
	app.include_router(categories.router)
	app.include_router(topics.router)
	app.include_router(posts.router)
	app.include_router(notifications.router)
	app.include_router(admin.router)
	app.include_router(ops.router)
	return app


app = create_app()
