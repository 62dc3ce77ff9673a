import pytest
from httpx import AsyncClient

from forum.domain.roles import Role


@pytest.mark.asyncio
async def test_category_writes_need_teacher(api_client: AsyncClient, make_user, auth_header):
	student = await make_user("alice")
	teacher = await make_user("tina", Role.TEACHER)
	payload = {"name": "Study Groups", "description": "Meet up"}

	denied = await api_client.post("/api/categories", json=payload, headers=auth_header(student))
	assert denied.status_code == 403
	assert denied.json()["message"] == "Access denied. Teacher or admin privileges required."

	created = await api_client.post("/api/categories", json=payload, headers=auth_header(teacher))
	assert created.status_code == 201
	assert created.json()["category"]["slug"] == "study-groups"

	listing = await api_client.get("/api/categories")
	assert [item["name"] for item in listing.json()] == ["Study Groups"]

	by_slug = await api_client.get("/api/categories/study-groups")
	assert by_slug.status_code == 200
	assert by_slug.json()["children"] == []


@pytest.mark.asyncio
async def test_topic_post_like_flow(api_client: AsyncClient, make_user, make_category, auth_header, repo):
	alice = await make_user("alice")
	bob = await make_user("bob")
	category = await make_category()

	created = await api_client.post(
		"/api/topics",
		json={"title": "Exam tips", "content": "Share yours", "categoryId": str(category.id), "tags": ["exams"]},
		headers=auth_header(alice),
	)
	assert created.status_code == 201
	topic = created.json()["topic"]
	first_post = created.json()["post"]
	assert topic["author"]["username"] == "alice"

	reply = await api_client.post(
		"/api/posts",
		json={"content": "Thanks!", "topicId": topic["id"], "replyTo": first_post["id"]},
		headers=auth_header(bob),
	)
	assert reply.status_code == 201
	assert reply.json()["post"]["replyToPost"]["id"] == first_post["id"]

	liked = await api_client.post(f"/api/posts/{first_post['id']}/like", headers=auth_header(bob))
	assert liked.json()["liked"] is True
	assert liked.json()["post"]["likes"] == [str(bob.id)]

	detail = await api_client.get(f"/api/topics/{topic['slug']}")
	assert detail.status_code == 200
	assert detail.json()["topic"]["postsCount"] == 2
	assert detail.json()["topic"]["replyCount"] == 1
	assert detail.json()["topic"]["viewCount"] == 1

	posts = await api_client.get(f"/api/posts/topic/{topic['id']}", params={"page": 1, "limit": 1})
	assert posts.json()["pagination"] == {"currentPage": 1, "totalPages": 2, "totalItems": 2, "hasMore": True}

	latest = await api_client.get("/api/topics/latest")
	assert latest.json()["items"][0]["lastPost"]["content"] == "Thanks!"

	assert len(repo.notifications_for(alice.id)) == 3


@pytest.mark.asyncio
async def test_malformed_and_missing_ids(api_client: AsyncClient, make_user, auth_header):
	alice = await make_user("alice")

	malformed = await api_client.delete("/api/posts/not-an-id", headers=auth_header(alice))
	assert malformed.status_code == 400
	assert malformed.json()["message"] == "Invalid post ID"

	missing = await api_client.get("/api/topics/no-such-topic")
	assert missing.status_code == 404
	assert missing.json()["message"] == "Topic not found"


@pytest.mark.asyncio
async def test_admin_reconcile_endpoint(api_client: AsyncClient, make_user, auth_header):
	admin = await make_user("root", Role.ADMIN)
	student = await make_user("alice")

	denied = await api_client.post("/api/admin/reconcile", headers=auth_header(student))
	assert denied.status_code == 403

	report = await api_client.post("/api/admin/reconcile", headers=auth_header(admin))
	assert report.status_code == 200
	assert report.json()["checked"] == 0
	assert report.json()["repairedTopicIds"] == []
