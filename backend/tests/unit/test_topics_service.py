import pytest

from forum.domain.exceptions import ForbiddenError, NotFoundError
from forum.domain.roles import Role
from forum.schemas import dto


async def _create(services, author, category, title="Exam tips"):
	return await services.topics.create_topic(
		author,
		dto.TopicCreateRequest(title=title, content="Share yours", category_id=str(category.id), tags=["exams"]),
	)


@pytest.mark.asyncio
async def test_create_topic_writes_first_post(services, repo, make_user, make_category):
	alice = await make_user("alice")
	category = await make_category()

	created = await _create(services, alice, category)

	assert created.message == "Topic created successfully"
	assert created.topic.slug.startswith("exam-tips-")
	assert created.topic.reply_count == 0
	assert created.topic.last_post_id == created.post.id
	assert created.post.content == "Share yours"
	assert created.topic.author.username == "alice"


@pytest.mark.asyncio
async def test_create_topic_rolls_back_when_first_post_fails(services, repo, make_user, make_category):
	alice = await make_user("alice")
	category = await make_category()
	repo.fail_on.add("create_post")

	with pytest.raises(RuntimeError):
		await _create(services, alice, category)

	assert repo.topics == {}


@pytest.mark.asyncio
async def test_unknown_category_is_rejected(services, make_user):
	alice = await make_user("alice")
	with pytest.raises(NotFoundError):
		await services.topics.create_topic(
			alice,
			dto.TopicCreateRequest(title="t", content="c", category_id="6f1c3f0e-2b55-4c53-9d0e-3a2b5e1c9f10"),
		)


@pytest.mark.asyncio
async def test_get_topic_by_slug_counts_views(services, make_user, make_category):
	alice = await make_user("alice")
	category = await make_category()
	created = await _create(services, alice, category)

	await services.topics.get_topic(created.topic.slug)
	detail = (await services.topics.get_topic(str(created.topic.id))).topic

	assert detail.view_count == 2
	assert detail.posts_count == 1
	assert detail.category.slug == "general"


@pytest.mark.asyncio
async def test_student_author_cannot_pin(services, make_user, make_category):
	alice = await make_user("alice")
	teacher = await make_user("tina", Role.TEACHER)
	category = await make_category()
	created = await _create(services, alice, category)

	own = await services.topics.update_topic(
		alice, str(created.topic.id), dto.TopicUpdateRequest(title="Renamed", is_pinned=True)
	)
	assert own.topic.title == "Renamed"
	assert own.topic.slug.startswith("renamed-")
	assert own.topic.is_pinned is False

	moderated = await services.topics.update_topic(teacher, str(created.topic.id), dto.TopicUpdateRequest(is_pinned=True))
	assert moderated.topic.is_pinned is True


@pytest.mark.asyncio
async def test_content_edit_syncs_first_post(services, repo, make_user, make_category):
	alice = await make_user("alice")
	category = await make_category()
	created = await _create(services, alice, category)

	await services.topics.update_topic(alice, str(created.topic.id), dto.TopicUpdateRequest(content="Updated body"))

	first = repo.posts[created.post.id]
	assert first.content == "Updated body"
	assert first.is_edited is False


@pytest.mark.asyncio
async def test_other_students_cannot_modify(services, make_user, make_category):
	alice = await make_user("alice")
	bob = await make_user("bob")
	category = await make_category()
	created = await _create(services, alice, category)

	with pytest.raises(ForbiddenError):
		await services.topics.update_topic(bob, str(created.topic.id), dto.TopicUpdateRequest(title="mine"))
	with pytest.raises(ForbiddenError):
		await services.topics.delete_topic(bob, str(created.topic.id))


@pytest.mark.asyncio
async def test_delete_topic_cascades_posts(services, repo, make_user, make_category):
	alice = await make_user("alice")
	bob = await make_user("bob")
	category = await make_category()
	created = await _create(services, alice, category)
	await services.posts.create_post(bob, dto.PostCreateRequest(content="hi", topic_id=str(created.topic.id)))

	response = await services.topics.delete_topic(alice, str(created.topic.id))

	assert response.message == "Topic and all its posts deleted successfully"
	assert repo.topics == {}
	assert repo.posts == {}


@pytest.mark.asyncio
async def test_latest_orders_by_activity(services, make_user, make_category):
	alice = await make_user("alice")
	category = await make_category()
	older = await _create(services, alice, category, "Older")
	await _create(services, alice, category, "Newer")
	await services.posts.create_post(alice, dto.PostCreateRequest(content="bump", topic_id=str(older.topic.id)))

	latest = await services.topics.list_latest(page=1, limit=10)

	assert [item.title for item in latest.items] == ["Older", "Newer"]
	assert latest.items[0].last_post.content == "bump"
	assert latest.pagination.total_items == 2

	by_category = await services.topics.list_by_category(str(category.id), page=1, limit=1)
	assert len(by_category.items) == 1
	assert by_category.pagination.has_more is True
