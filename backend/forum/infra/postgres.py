"""AsyncPG pool management for the forum backend.

The pool is owned by an explicitly constructed ``Database`` handle which is
created in the application lifespan and handed to the repository.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from forum.obs import logging as obs_logging
from forum.settings import Settings

logger = obs_logging.get_logger("forum.db")


async def _init_connection(conn: asyncpg.Connection) -> None:
	await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


class Database:
	"""Lifecycle wrapper around an asyncpg pool."""

	def __init__(self, dsn: str, *, min_size: int = 1, max_size: int = 10, ssl: bool = False) -> None:
		# Force 127.0.0.1 instead of localhost to avoid IPv6 resolution issues
		self.dsn = dsn.replace("localhost", "127.0.0.1")
		self.min_size = min_size
		self.max_size = max_size
		self.ssl = ssl
		self._pool: Optional[asyncpg.pool.Pool] = None

	@classmethod
	def from_settings(cls, settings: Settings) -> "Database":
		return cls(
			settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			ssl=settings.postgres_ssl,
		)

	@classmethod
	def from_pool(cls, pool: asyncpg.pool.Pool) -> "Database":
		database = cls("")
		database._pool = pool
		return database

	@property
	def is_open(self) -> bool:
		return self._pool is not None

	async def init(self) -> asyncpg.pool.Pool:
		if self._pool is None:
			self._pool = await asyncpg.create_pool(
				dsn=self.dsn,
				min_size=self.min_size,
				max_size=self.max_size,
				ssl="require" if self.ssl else "disable",
				init=_init_connection,
			)
			logger.info("postgres_pool_ready", extra={"min_size": self.min_size, "max_size": self.max_size})
		return self._pool

	async def close(self) -> None:
		if self._pool is not None:
			await self._pool.close()
			self._pool = None
			logger.info("postgres_pool_closed")

	@property
	def pool(self) -> asyncpg.pool.Pool:
		if self._pool is None:
			raise RuntimeError("database_not_initialised")
		return self._pool

	@asynccontextmanager
	async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
		async with self.pool.acquire() as conn:
			yield conn

	@asynccontextmanager
	async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
		async with self.pool.acquire() as conn:
			async with conn.transaction():
				yield conn

	async def ping(self) -> bool:
		async with self.acquire() as conn:
			return await conn.fetchval("SELECT 1") == 1
