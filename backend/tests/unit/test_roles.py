import pytest

from forum.domain.roles import Role, has_at_least, normalize_role, parse_role


def test_roles_are_totally_ordered():
	assert Role.STUDENT < Role.TEACHER < Role.ADMIN
	assert has_at_least(Role.ADMIN, Role.TEACHER)
	assert not has_at_least(Role.STUDENT, Role.TEACHER)
	assert not has_at_least(None, Role.STUDENT)
	assert not has_at_least("superuser", Role.STUDENT)


@pytest.mark.parametrize(
	"raw,expected",
	[("ADMIN", Role.ADMIN), ("ROLE_TEACHER", Role.TEACHER), ("weird", Role.STUDENT), (None, Role.STUDENT)],
)
def test_normalize_role_is_lenient(raw, expected):
	assert normalize_role(raw) is expected


def test_parse_role_is_strict():
	assert parse_role(" Teacher ") is Role.TEACHER
	assert parse_role("moderator") is None
