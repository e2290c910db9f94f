"""Heartbeat event stream.

Each connection receives a connected event, then a tick every
tick_interval seconds until the client goes away.

Connect via:
  curl -N http://localhost:8000/api/events
  or in a browser with new EventSource("/api/events")
"""

from fastapi import Request

from sse_heartbeat.config import get_settings
from sse_heartbeat.core.emitter import HeartbeatStream
from sse_heartbeat.fastapi.responses import EventStreamResponse

TAGS = ["events"]
SUMMARY = "Stream heartbeat events"


async def get(request: Request) -> EventStreamResponse:
    """Open a text/event-stream of connected and tick events."""
    settings = get_settings(request)
    stream = HeartbeatStream(
        interval=settings.tick_interval,
        connected_message=settings.connected_message,
    )
    return EventStreamResponse(stream)
