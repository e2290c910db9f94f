"""Shared pytest fixtures for sse-heartbeat tests."""

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import pytest
from httpx_sse import EventSource, ServerSentEvent

# ---------------------------------------------------------------------------
# Route files
# ---------------------------------------------------------------------------


@pytest.fixture
def create_route_file(tmp_path: Path):
    """Create a route.py file with given content in a directory.

    Returns a callable that accepts:
    - content: Python code as string
    - parent_dir: Path to parent directory (defaults to tmp_path)
    - subdir: Optional subdirectory name (e.g., "api/events")

    Returns the Path to the created route.py file.
    """

    def _create(
        content: str,
        parent_dir: Path | None = None,
        subdir: str = "",
    ) -> Path:
        base = parent_dir or tmp_path
        target_dir = base / subdir if subdir else base
        target_dir.mkdir(parents=True, exist_ok=True)

        route_file = target_dir / "route.py"
        route_file.write_text(content)
        return route_file

    return _create


# ---------------------------------------------------------------------------
# Event-stream bodies
# ---------------------------------------------------------------------------


def parse_sse(body: str) -> list[ServerSentEvent]:
    """Decode a complete text/event-stream body with httpx-sse."""
    response = httpx.Response(
        200, headers={"content-type": "text/event-stream"}, content=body.encode()
    )
    return list(EventSource(response).iter_sse())


@pytest.fixture(name="parse_sse")
def parse_sse_fixture() -> Callable[[str], list[ServerSentEvent]]:
    return parse_sse


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class FakeSubscription:
    """In-memory subscription driven by the test."""

    def __init__(self) -> None:
        self.on_open: Callable[[], None] | None = None
        self.on_error: Callable[[BaseException | None], None] | None = None
        self.listeners: defaultdict[str, list[Callable[[ServerSentEvent], None]]] = defaultdict(
            list
        )
        self.opened = False
        self.closed = False

    def add_listener(self, event_type: str, callback: Callable[[ServerSentEvent], None]) -> None:
        self.listeners[event_type].append(callback)

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.closed = True

    # Test drivers. They deliberately keep working after close() so tests
    # can check that stale callbacks are ignored by the consumer.

    def emit_open(self) -> None:
        if self.on_open is not None:
            self.on_open()

    def emit_error(self, error: BaseException | None = None) -> None:
        if self.on_error is not None:
            self.on_error(error)

    def emit(self, event_type: str, data: str) -> None:
        for callback in list(self.listeners.get(event_type, [])):
            callback(ServerSentEvent(event=event_type, data=data))


class FakeSubscriptionFactory:
    """Subscription factory that remembers every subscription it built."""

    def __init__(self) -> None:
        self.created: list[FakeSubscription] = []

    def __call__(self) -> FakeSubscription:
        subscription = FakeSubscription()
        self.created.append(subscription)
        return subscription

    @property
    def latest(self) -> FakeSubscription:
        return self.created[-1]


@pytest.fixture
def subscription_factory() -> FakeSubscriptionFactory:
    return FakeSubscriptionFactory()


# ---------------------------------------------------------------------------
# Streaming ASGI calls
# ---------------------------------------------------------------------------


@dataclass
class StreamCapture:
    """Everything an ASGI app sent during one streaming request."""

    start: dict[str, Any] | None = None
    chunks: list[bytes] = field(default_factory=list)

    @property
    def headers(self) -> dict[str, str]:
        assert self.start is not None
        return {k.decode("latin-1"): v.decode("latin-1") for k, v in self.start["headers"]}

    @property
    def body(self) -> str:
        return b"".join(self.chunks).decode("utf-8")

    @property
    def events(self) -> list[ServerSentEvent]:
        return parse_sse(self.body)


StreamRunner = Callable[..., Awaitable[StreamCapture]]


@pytest.fixture
def run_stream() -> StreamRunner:
    """Drive a streaming ASGI app until it has sent `frames` body chunks.

    The fake client then disconnects (http.disconnect) and the call waits
    for the app to return. Real HTTP clients can't be used here: the test
    transports buffer the full body, and this body never ends.
    """

    async def _run(
        app: Callable[..., Awaitable[None]],
        *,
        frames: int,
        path: str = "/api/events",
        timeout: float = 5.0,
    ) -> StreamCapture:
        capture = StreamCapture()
        disconnected = asyncio.Event()
        request_sent = False

        async def receive() -> dict[str, Any]:
            nonlocal request_sent
            if not request_sent:
                request_sent = True
                return {"type": "http.request", "body": b"", "more_body": False}
            await disconnected.wait()
            return {"type": "http.disconnect"}

        async def send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                capture.start = message
            elif message["type"] == "http.response.body" and message.get("body"):
                capture.chunks.append(message["body"])
                if len(capture.chunks) >= frames:
                    disconnected.set()

        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": b"",
            "headers": [(b"host", b"testserver"), (b"accept", b"text/event-stream")],
            "client": ("testclient", 50000),
            "server": ("testserver", 80),
        }

        await asyncio.wait_for(app(scope, receive, send), timeout=timeout)
        return capture

    return _run


@pytest.fixture
def pending_timers() -> Callable[[], Awaitable[list[asyncio.Task[Any]]]]:
    """Return heartbeat timer tasks still running once cancellations settle."""

    async def _pending() -> list[asyncio.Task[Any]]:
        for _ in range(3):
            await asyncio.sleep(0)
        return [
            task
            for task in asyncio.all_tasks()
            if not task.done()
            and getattr(task.get_coro(), "__qualname__", "") == "HeartbeatStream._run_timer"
        ]

    return _pending
