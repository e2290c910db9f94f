"""FastAPI adapter for the heartbeat server."""

from sse_heartbeat.fastapi.app import create_app
from sse_heartbeat.fastapi.responses import EVENT_STREAM_HEADERS, EventStreamResponse
from sse_heartbeat.fastapi.router import create_router_from_path

__all__ = [
    "EVENT_STREAM_HEADERS",
    "EventStreamResponse",
    "create_app",
    "create_router_from_path",
]
