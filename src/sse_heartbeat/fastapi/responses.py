"""Streaming response for heartbeat streams."""

import logging
from collections.abc import Mapping

from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from sse_heartbeat.core.emitter import HeartbeatStream

logger = logging.getLogger(__name__)

EVENT_STREAM_HEADERS: dict[str, str] = {
    # Set explicitly so Starlette doesn't append a charset
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    # Stop nginx and similar proxies from buffering the stream
    "X-Accel-Buffering": "no",
}


class EventStreamResponse(StreamingResponse):
    """Serve a HeartbeatStream as text/event-stream.

    Starlette ends the response when the client disconnects (an
    http.disconnect message, or a failed send on ASGI servers that report
    disconnects that way) or when the server cancels the request. Every
    exit path runs one cleanup action: stream.aclose(), which is idempotent
    and returns once the tick timer has stopped.

    Example:
        async def get(request: Request) -> EventStreamResponse:
            return EventStreamResponse(HeartbeatStream(interval=1.5))
    """

    def __init__(
        self,
        stream: HeartbeatStream,
        *,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.stream = stream
        super().__init__(
            stream.frames(),
            status_code=status_code,
            headers={**EVENT_STREAM_HEADERS, **(headers or {})},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.stream.aclose()
            logger.debug(
                "Event stream response finished",
                extra={"path": scope.get("path"), "ticks": self.stream.tick_count},
            )
