"""Stream event model and text/event-stream framing.

A stream event is a type tag plus a JSON payload. On the wire each event
becomes one frame:

    event: <type>
    data: <json>
    <blank line>
"""

import json
import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sse_heartbeat.exceptions import EventFormatError

CONNECTED = "connected"
TICK = "tick"
# Type of events sent without an event field
MESSAGE = "message"

# Upper bound (exclusive) of the tick sample value
RANDOM_VALUE_CEILING = 100


@dataclass(frozen=True)
class StreamEvent:
    """One typed message emitted by the server.

    Attributes:
        type: Short tag naming the event (e.g. "connected", "tick").
        payload: JSON-serializable mapping specific to the type.
    """

    type: str
    payload: Mapping[str, Any] = field(default_factory=dict)


def isoformat(moment: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with milliseconds and a Z suffix.

    Examples:
        2024-01-01 00:00:00+00:00 -> "2024-01-01T00:00:00.000Z"
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def sample_value(rng: random.Random | None = None) -> float:
    """Draw a pseudo-random value in [0, 100) with at most 2 decimal digits.

    Rounding can push values just below the ceiling up to 100.0; those are
    held at 99.99 so the upper bound stays exclusive.
    """
    draw = (rng or random).random() * RANDOM_VALUE_CEILING
    return min(round(draw, 2), RANDOM_VALUE_CEILING - 0.01)


def connected_event(message: str, now: datetime | None = None) -> StreamEvent:
    """Build the event sent once when a stream opens."""
    return StreamEvent(
        type=CONNECTED,
        payload={
            "message": message,
            "connectedAt": isoformat(now or utcnow()),
        },
    )


def tick_event(
    tick_id: int,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> StreamEvent:
    """Build one heartbeat event.

    Args:
        tick_id: Connection-local counter, starting at 1.
        now: Emission time (defaults to the current UTC time).
        rng: Random source for the sample value.
    """
    return StreamEvent(
        type=TICK,
        payload={
            "id": tick_id,
            "timestamp": isoformat(now or utcnow()),
            "randomValue": sample_value(rng),
        },
    )


def format_event(event: StreamEvent) -> str:
    """Encode a stream event as a text/event-stream frame.

    Raises:
        EventFormatError: If the payload is not JSON-serializable.
    """
    try:
        data = json.dumps(dict(event.payload), separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise EventFormatError(
            f"Payload for event '{event.type}' is not JSON-serializable: {exc}"
        ) from exc

    return f"event: {event.type}\ndata: {data}\n\n"
