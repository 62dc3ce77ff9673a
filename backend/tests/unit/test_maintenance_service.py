import pytest

from forum.schemas import dto


@pytest.mark.asyncio
async def test_reconcile_repairs_drifted_counters(services, repo, make_user, make_category):
	alice = await make_user("alice")
	category = await make_category()
	created = await services.topics.create_topic(
		alice, dto.TopicCreateRequest(title="t", content="c", category_id=str(category.id))
	)
	healthy = await services.topics.create_topic(
		alice, dto.TopicCreateRequest(title="u", content="c", category_id=str(category.id))
	)
	reply = (await services.posts.create_post(alice, dto.PostCreateRequest(content="r", topic_id=str(created.topic.id)))).post
	repo.topics[created.topic.id] = repo.topics[created.topic.id].model_copy(update={"reply_count": 7, "last_post_id": None})

	report = await services.maintenance.reconcile_topics()

	assert report.checked == 2
	assert report.repaired_topic_ids == [created.topic.id]
	fixed = repo.topics[created.topic.id]
	assert fixed.reply_count == 1
	assert fixed.last_post_id == reply.id
	assert repo.topics[healthy.topic.id].reply_count == 0
