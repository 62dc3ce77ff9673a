from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator, Iterator

import asyncpg
import pytest
import pytest_asyncio

from forum.domain.exceptions import ConflictError
from forum.domain.models import NotificationType
from forum.domain.repo import ForumRepository
from forum.infra.postgres import Database

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


@pytest.fixture(scope="module")
def postgres_container() -> Iterator["PostgresContainer"]:
	testcontainers = pytest.importorskip(
		"testcontainers.postgres",
		reason="testcontainers.postgres is required for integration tests",
	)
	PostgresContainer = testcontainers.PostgresContainer
	container = PostgresContainer("postgres:16-alpine")
	try:
		container.start()
	except Exception as exc:  # pragma: no cover - environment without docker
		pytest.skip(f"unable to start postgres container: {exc}")
	try:
		yield container
	finally:
		container.stop()


async def _run_migrations(pool: asyncpg.Pool) -> None:
	async with pool.acquire() as conn:
		await conn.execute("DROP SCHEMA IF EXISTS public CASCADE")
		await conn.execute("CREATE SCHEMA public")
		await conn.execute("GRANT ALL ON SCHEMA public TO PUBLIC")
		for path in sorted(MIGRATIONS_DIR.glob("*.sql")):
			await conn.execute(path.read_text(encoding="utf-8"))


@pytest_asyncio.fixture
async def forum_repo(postgres_container) -> AsyncIterator[ForumRepository]:
	url = postgres_container.get_connection_url().replace("postgresql+psycopg2", "postgresql")
	pool = await asyncpg.create_pool(dsn=url, min_size=1, max_size=4)
	await _run_migrations(pool)
	try:
		yield ForumRepository(Database.from_pool(pool))
	finally:
		await pool.close()


async def _seed(repo: ForumRepository):
	alice = await repo.create_user(
		username="alice", email="alice@example.com", password_hash="x", display_name="Alice", role="student", avatar=None
	)
	bob = await repo.create_user(
		username="bob", email="bob@example.com", password_hash="x", display_name="Bob", role="student", avatar=None
	)
	category = await repo.create_category(
		name="General", description="d", slug="general", order=0, parent_category=None, created_by=None
	)
	topic = await repo.create_topic(
		title="Exam tips", content="c", slug="exam-tips-1", category_id=category.id, author_id=alice.id, tags=["exams"]
	)
	first = await repo.create_post(topic_id=topic.id, author_id=alice.id, content="c")
	await repo.set_topic_last_post(topic.id, first.id, first.created_at)
	return alice, bob, topic, first


async def test_unique_usernames(forum_repo):
	await _seed(forum_repo)
	with pytest.raises(ConflictError, match="Username already exists"):
		await forum_repo.create_user(
			username="alice", email="new@example.com", password_hash="x", display_name="A", role="student", avatar=None
		)


async def test_reply_counters_and_relink(forum_repo):
	_, bob, topic, first = await _seed(forum_repo)

	reply = await forum_repo.create_reply(topic_id=topic.id, author_id=bob.id, content="r", reply_to=first.id)
	stored = await forum_repo.get_topic(topic.id)
	assert stored.reply_count == 1
	assert stored.last_post_id == reply.id

	await forum_repo.delete_reply(reply)
	stored = await forum_repo.get_topic(topic.id)
	assert stored.reply_count == 0
	assert stored.last_post_id == first.id


async def test_toggle_like_and_tombstone_update(forum_repo):
	_, bob, _, first = await _seed(forum_repo)

	liked, state = await forum_repo.toggle_like(first.id, bob.id)
	assert state is True
	assert liked.likes == [bob.id]
	unliked, state = await forum_repo.toggle_like(first.id, bob.id)
	assert state is False
	assert unliked.likes == []

	edited = await forum_repo.update_post_content(first.id, "gone")
	assert edited.is_edited is True
	assert edited.last_edited_at is not None


async def test_delete_topic_cascades(forum_repo):
	_, bob, topic, _ = await _seed(forum_repo)
	await forum_repo.create_reply(topic_id=topic.id, author_id=bob.id, content="r")

	assert await forum_repo.delete_topic(topic.id) is True
	assert await forum_repo.count_topic_posts(topic.id) == 0


async def test_notification_read_counts(forum_repo):
	alice, bob, _, _ = await _seed(forum_repo)
	for _ in range(3):
		await forum_repo.insert_notification(
			user_id=alice.id, actor_id=bob.id, type=NotificationType.LIKE, title="t", message="m"
		)

	assert await forum_repo.count_notifications(alice.id, unread_only=True) == 3
	assert await forum_repo.mark_notifications_read(alice.id) == 3
	assert await forum_repo.mark_notifications_read(alice.id) == 0
	assert await forum_repo.delete_all_notifications(alice.id) == 3


async def test_reconcile_topic(forum_repo):
	_, bob, topic, _ = await _seed(forum_repo)
	reply = await forum_repo.create_reply(topic_id=topic.id, author_id=bob.id, content="r")
	await forum_repo.update_topic(topic.id, title="Exam tips")
	async with forum_repo.db.acquire() as conn:
		await conn.execute("UPDATE topics SET reply_count=9 WHERE id=$1", topic.id)

	before, after = await forum_repo.reconcile_topic(topic.id)

	assert before.reply_count == 9
	assert after.reply_count == 1
	assert after.last_post_id == reply.id
