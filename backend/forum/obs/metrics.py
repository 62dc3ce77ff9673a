"""Prometheus metrics for the forum backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary

REQUEST_COUNTER = Counter(
	"forum_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"forum_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

POSTGRES_UP = Gauge("forum_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("forum_postgres_latency_seconds", "Postgres ping latency (seconds)")

AUTH_EVENTS = Counter(
	"forum_auth_events_total",
	"Registration and login attempts",
	["action", "result"],
)

TOPICS_CREATED = Counter("forum_topics_created_total", "Topics created")
POSTS_CREATED = Counter("forum_posts_created_total", "Replies created")
POSTS_DELETED = Counter(
	"forum_posts_deleted_total",
	"Post deletions by outcome",
	["mode"],
)
LIKE_TOGGLES = Counter(
	"forum_like_toggles_total",
	"Like toggles",
	["action"],
)

NOTIFICATIONS = Counter(
	"forum_notifications_total",
	"Notification side effects by type and outcome",
	["type", "result"],
)

RECONCILE_REPAIRS = Counter(
	"forum_reconcile_repairs_total",
	"Topics whose denormalized counters were repaired",
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)


def inc_auth(action: str, result: str) -> None:
	AUTH_EVENTS.labels(action=action, result=result).inc()


def inc_topic_created() -> None:
	TOPICS_CREATED.inc()


def inc_post_created() -> None:
	POSTS_CREATED.inc()


def inc_post_deleted(mode: str) -> None:
	POSTS_DELETED.labels(mode=mode).inc()


def inc_like_toggle(liked: bool) -> None:
	LIKE_TOGGLES.labels(action="like" if liked else "unlike").inc()


def inc_notification(type: str, result: str) -> None:
	NOTIFICATIONS.labels(type=type, result=result).inc()


def inc_reconcile_repair(count: int = 1) -> None:
	if count > 0:
		RECONCILE_REPAIRS.inc(count)
