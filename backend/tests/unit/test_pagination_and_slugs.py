from forum.domain.lookup import ById, BySlug, ByUsername, parse_lookup, parse_user_lookup
from forum.domain.pagination import page_info, page_request
from forum.domain.slugs import category_slug, extract_mentions, slugify, topic_slug


def test_page_request_clamps_bad_values():
	request = page_request(0, -5, default_limit=10, max_limit=100)
	assert request.page == 1
	assert request.limit == 10
	assert request.offset == 0


def test_page_request_caps_limit():
	assert page_request(2, 500, max_limit=100).limit == 100


def test_page_info_reports_has_more():
	info = page_info(page_request(2, 2), 5)
	assert info.current_page == 2
	assert info.total_pages == 3
	assert info.total_items == 5
	assert info.has_more is True

	last = page_info(page_request(3, 2), 5)
	assert last.has_more is False


def test_slugify_collapses_non_alphanumerics():
	assert slugify("Hello, World!") == "hello-world-"
	assert category_slug("Data Structures & Algorithms") == "data-structures-algorithms"


def test_topic_slug_carries_timestamp():
	assert topic_slug("Exam tips", now_ms=1700000000000) == "exam-tips-1700000000000"


def test_extract_mentions_deduplicates_in_order():
	assert extract_mentions("@bob hi @alice and @bob again") == ["bob", "alice"]
	assert extract_mentions("no mentions here") == []


def test_lookups_distinguish_ids_from_slugs():
	raw = "6f1c3f0e-2b55-4c53-9d0e-3a2b5e1c9f10"
	assert isinstance(parse_lookup(raw), ById)
	assert parse_lookup("exam-tips-1") == BySlug("exam-tips-1")
	assert parse_user_lookup("alice") == ByUsername("alice")
