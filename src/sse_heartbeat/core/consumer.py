"""Event consumer: subscription lifecycle, payload decoding and a capped log.

The consumer never talks to the network itself. It is handed a factory
that produces Subscription objects (anything with the event-source shape:
named-event listeners, open/error callbacks, open() and close()), so the
same logic runs against HttpxEventSource or an in-memory fake.
"""

import json
import logging
import uuid
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from httpx_sse import ServerSentEvent

from sse_heartbeat.config import DEFAULT_LOG_CAPACITY
from sse_heartbeat.core.events import CONNECTED, MESSAGE, TICK

logger = logging.getLogger(__name__)

# Event types the consumer records; anything else is ignored by the transport
LISTENED_EVENT_TYPES: tuple[str, ...] = (MESSAGE, CONNECTED, TICK)


class Subscription(Protocol):
    """A reliable event subscription, shaped like a browser EventSource."""

    on_open: Callable[[], None] | None
    on_error: Callable[[BaseException | None], None] | None

    def add_listener(self, event_type: str, callback: Callable[[ServerSentEvent], None]) -> None:
        ...

    def open(self) -> None:
        ...

    def close(self) -> None:
        ...


SubscriptionFactory = Callable[[], Subscription]


def parse_payload(raw: str) -> dict[str, Any]:
    """Decode a wire payload into a mapping.

    JSON objects are returned as-is. Any other JSON value is wrapped as
    {"value": parsed}. Text that can't be decoded (not JSON, or nested too
    deeply to decode) is wrapped as {"value": raw}.

    Examples:
        '{"id": 3}' -> {"id": 3}
        '[1, 2]'    -> {"value": [1, 2]}
        'not-json'  -> {"value": "not-json"}
    """
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        return {"value": raw}

    if isinstance(parsed, dict):
        return parsed
    return {"value": parsed}


def _local_time() -> str:
    return datetime.now().strftime("%H:%M:%S")


@dataclass(frozen=True)
class LogEntry:
    """A received event, stamped on arrival.

    Attributes:
        id: Process-unique id generated at receipt.
        type: Event type as declared on the wire.
        received_at: Client-local wall-clock time of receipt.
        payload: Decoded payload mapping.
    """

    id: str
    type: str
    received_at: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "receivedAt": self.received_at,
            "payload": self.payload,
        }


class EventLog:
    """Newest-first log holding at most `capacity` entries.

    Entries are inserted at the head; once the log is full the oldest
    entry is dropped.
    """

    def __init__(self, capacity: int = DEFAULT_LOG_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    def add(self, entry: LogEntry) -> None:
        self._entries.appendleft(entry)

    def clear(self) -> None:
        self._entries.clear()

    def latest(self, event_type: str) -> LogEntry | None:
        """Return the most recent entry of the given type, if any."""
        return next((e for e in self._entries if e.type == event_type), None)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> LogEntry:
        return self._entries[index]


class EventConsumer:
    """Keep a subscription running and record what it receives.

    Args:
        subscription_factory: Called to create each new subscription.
        capacity: Maximum number of log entries.
        clock: Returns the receipt time string for new entries.
        autostart: Open a subscription immediately. Requires a running
            event loop when the subscription is asyncio-based.

    Attributes:
        running: Whether a subscription should be active (False when paused).
        connected: Whether the active subscription's transport is open.
        log: The capped, newest-first event log.
    """

    def __init__(
        self,
        subscription_factory: SubscriptionFactory,
        *,
        capacity: int = DEFAULT_LOG_CAPACITY,
        clock: Callable[[], str] = _local_time,
        autostart: bool = False,
    ) -> None:
        self._factory = subscription_factory
        self._clock = clock
        self._subscription: Subscription | None = None
        # Bumped on every teardown; callbacks carrying an older token are ignored
        self._generation = 0

        self.log = EventLog(capacity)
        self.running = False
        self.connected = False

        if autostart:
            self.resume()

    @property
    def latest_tick(self) -> LogEntry | None:
        """Most recent tick entry, or None."""
        return self.log.latest(TICK)

    @property
    def latest_value(self) -> Any:
        """randomValue of the latest tick, or None."""
        tick = self.latest_tick
        return tick.payload.get("randomValue") if tick is not None else None

    @property
    def subscription(self) -> Subscription | None:
        return self._subscription

    def resume(self) -> None:
        """Open a fresh subscription if none is running."""
        if self.running:
            return
        self.running = True
        self._subscribe()

    def pause(self) -> None:
        """Close the subscription and mark disconnected. The log is kept."""
        self.running = False
        self._unsubscribe()

    def toggle(self) -> None:
        if self.running:
            self.pause()
        else:
            self.resume()

    def clear(self) -> None:
        """Empty the log; the subscription and connected flag are untouched."""
        self.log.clear()

    def close(self) -> None:
        """Tear down: close any subscription and mark disconnected."""
        self.running = False
        self._unsubscribe()

    async def __aenter__(self) -> "EventConsumer":
        self.resume()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        subscription = self._subscription
        self.close()
        # Wait for asyncio transports (HttpxEventSource) to finish shutting down
        aclose = getattr(subscription, "aclose", None)
        if aclose is not None:
            await aclose()

    def record(self, event_type: str, data: str) -> LogEntry:
        """Decode a payload and prepend it to the log as a new entry."""
        entry = LogEntry(
            id=str(uuid.uuid4()),
            type=event_type,
            received_at=self._clock(),
            payload=parse_payload(data),
        )
        self.log.add(entry)
        logger.debug("Recorded event", extra={"event_type": event_type, "entry_id": entry.id})
        return entry

    def _subscribe(self) -> None:
        # Never leave two subscriptions alive
        self._unsubscribe()

        token = self._generation
        subscription = self._factory()

        def current() -> bool:
            return token == self._generation

        def handle_open() -> None:
            if current():
                self.connected = True

        def handle_error(error: BaseException | None = None) -> None:
            if current():
                self.connected = False
                logger.warning(
                    "Subscription error",
                    extra={"error": repr(error) if error is not None else None},
                )

        def handle_event(event: ServerSentEvent) -> None:
            if current():
                self.record(event.event, event.data)

        subscription.on_open = handle_open
        subscription.on_error = handle_error
        for event_type in LISTENED_EVENT_TYPES:
            subscription.add_listener(event_type, handle_event)

        self._subscription = subscription
        subscription.open()

    def _unsubscribe(self) -> None:
        self._generation += 1
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.close()
        self.connected = False
