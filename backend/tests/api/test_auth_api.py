import pytest
from httpx import AsyncClient

from forum.domain.roles import Role


REGISTRATION = {"username": "alice", "email": "alice@example.com", "password": "secret123", "displayName": "Alice"}


@pytest.mark.asyncio
async def test_register_login_me_flow(api_client: AsyncClient):
	registered = await api_client.post("/api/auth/register", json=REGISTRATION)
	assert registered.status_code == 201
	body = registered.json()
	assert body["message"] == "User registered successfully"
	assert body["user"]["displayName"] == "Alice"
	assert body["user"]["role"] == "student"
	assert "passwordHash" not in body["user"]

	login = await api_client.post("/api/auth/login", json={"username": "alice@example.com", "password": "secret123"})
	assert login.status_code == 200
	token = login.json()["token"]

	me = await api_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
	assert me.status_code == 200
	assert me.json()["user"]["username"] == "alice"


@pytest.mark.asyncio
async def test_register_conflict_and_validation(api_client: AsyncClient):
	await api_client.post("/api/auth/register", json=REGISTRATION)

	duplicate = await api_client.post("/api/auth/register", json=REGISTRATION)
	assert duplicate.status_code == 409
	assert duplicate.json()["message"] == "Username already exists"

	invalid = await api_client.post("/api/auth/register", json={**REGISTRATION, "username": "x", "email": "nope"})
	assert invalid.status_code == 400
	assert invalid.json()["message"] == "validation_error"
	assert invalid.json()["errors"]


@pytest.mark.asyncio
async def test_missing_and_bad_tokens(api_client: AsyncClient):
	missing = await api_client.get("/api/auth/me")
	assert missing.status_code == 401
	assert missing.json()["message"] == "Authentication required. No token provided."
	assert missing.headers["X-Request-Id"] == missing.json()["request_id"]

	bad = await api_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
	assert bad.status_code == 401
	assert bad.json()["message"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_role_update_requires_admin(api_client: AsyncClient, make_user, auth_header):
	admin = await make_user("root", Role.ADMIN)
	bob = await make_user("bob")

	denied = await api_client.put(f"/api/users/{bob.id}/role", json={"role": "teacher"}, headers=auth_header(bob))
	assert denied.status_code == 403
	assert denied.json()["message"] == "Access denied. Admin privileges required."

	granted = await api_client.put(f"/api/users/{bob.id}/role", json={"role": "teacher"}, headers=auth_header(admin))
	assert granted.status_code == 200
	assert granted.json()["user"]["role"] == "teacher"

	refreshed = await api_client.post("/api/auth/refresh-token", headers=auth_header(bob))
	assert refreshed.status_code == 200
	assert refreshed.json()["user"]["role"] == "teacher"


@pytest.mark.asyncio
async def test_public_profile_lookup(api_client: AsyncClient, make_user):
	alice = await make_user("alice")

	by_name = await api_client.get("/api/users/profile/alice")
	by_id = await api_client.get(f"/api/users/profile/{alice.id}")
	missing = await api_client.get("/api/users/profile/ghost")

	assert by_name.json()["id"] == by_id.json()["id"] == str(alice.id)
	assert by_name.json()["topicCount"] == 0
	assert "email" not in by_name.json()
	assert missing.status_code == 404
