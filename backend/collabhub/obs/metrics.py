"""Prometheus metrics for the hub."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"collabhub_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"collabhub_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"collabhub_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_REFUSED = Counter(
	"collabhub_socketio_refused_total",
	"Socket.IO connection attempts refused",
	["reason"],
)

SOCKET_EVENTS = Counter(
	"collabhub_socketio_events_total",
	"Socket.IO events received and sent per namespace",
	["namespace", "event", "direction"],
)

SOCKET_EVENT_ERRORS = Counter(
	"collabhub_socketio_event_errors_total",
	"Inbound events dropped with an error reported to the sender",
	["event", "code"],
)

PRESENCE_ROOMS = Gauge(
	"collabhub_presence_rooms",
	"Rooms with at least one present connection",
)

PRESENCE_ENTRIES = Gauge(
	"collabhub_presence_entries",
	"Presence entries across all rooms",
)

CHAT_MESSAGES = Counter(
	"collabhub_chat_messages_total",
	"Chat messages handled by the persistence bridge",
	["result"],
)

CHAT_WRITE_LATENCY = Histogram(
	"collabhub_chat_write_seconds",
	"Durable chat write plus read-back latency",
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

RATE_LIMITED_EVENTS = Counter(
	"collabhub_rate_limited_total",
	"Events dropped due to rate limiting",
	["kind"],
)

REDIS_UP = Gauge("collabhub_redis_up", "Redis readiness probe result")
POSTGRES_UP = Gauge("collabhub_postgres_up", "Postgres readiness probe result")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_refused(reason: str) -> None:
	SOCKET_REFUSED.labels(reason=reason).inc()


def socket_event(namespace: str, event: str, direction: str = "in") -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event, direction=direction).inc()


def socket_event_error(event: str, code: str) -> None:
	SOCKET_EVENT_ERRORS.labels(event=event, code=code).inc()


def presence_snapshot(rooms: int, entries: int) -> None:
	PRESENCE_ROOMS.set(rooms)
	PRESENCE_ENTRIES.set(entries)


def chat_message(result: str) -> None:
	CHAT_MESSAGES.labels(result=result).inc()


def rate_limited(kind: str) -> None:
	RATE_LIMITED_EVENTS.labels(kind=kind).inc()


def mark_redis(ok: bool) -> None:
	REDIS_UP.set(1 if ok else 0)


def mark_postgres(ok: bool) -> None:
	POSTGRES_UP.set(1 if ok else 0)
