"""Server-sent heartbeat events: a FastAPI emitter and a reconnecting consumer."""

# Server
from sse_heartbeat.config import EVENTS_PATH, StreamSettings

# Client
from sse_heartbeat.client.eventsource import HttpxEventSource, ReadyState
from sse_heartbeat.core.consumer import (
    EventConsumer,
    EventLog,
    LogEntry,
    Subscription,
    parse_payload,
)
from sse_heartbeat.core.emitter import HeartbeatStream, StreamState

# Wire format
from sse_heartbeat.core.events import StreamEvent, format_event

# Exceptions
from sse_heartbeat.exceptions import (
    DuplicateRouteError,
    EventFormatError,
    HeartbeatError,
    PathParseError,
    RouteDiscoveryError,
    RouteValidationError,
    StreamClosedError,
    SubscriptionError,
)
from sse_heartbeat.fastapi.app import create_app
from sse_heartbeat.fastapi.responses import EventStreamResponse

__all__ = [
    # Server
    "create_app",
    "EventStreamResponse",
    "HeartbeatStream",
    "StreamSettings",
    "StreamState",
    "EVENTS_PATH",
    # Client
    "EventConsumer",
    "EventLog",
    "HttpxEventSource",
    "LogEntry",
    "ReadyState",
    "Subscription",
    "parse_payload",
    # Wire format
    "StreamEvent",
    "format_event",
    # Exceptions
    "DuplicateRouteError",
    "EventFormatError",
    "HeartbeatError",
    "PathParseError",
    "RouteDiscoveryError",
    "RouteValidationError",
    "StreamClosedError",
    "SubscriptionError",
]

__version__ = "1.0.0"
