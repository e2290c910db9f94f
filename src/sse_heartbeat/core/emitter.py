"""Per-connection heartbeat stream.

Each connection owns one HeartbeatStream: a counter, a timer task and a
queue of pending events. Nothing is shared between connections.

State machine:
    IDLE --start()--> STREAMING --close()--> CLOSED
    STREAMING --timer fire--> STREAMING (queues one tick)

CLOSED is terminal. close() is idempotent, so the frame iterator and the
response that serves it can both call it on their way out.
"""

import asyncio
import enum
import logging
import random
from collections.abc import AsyncIterator, Callable
from datetime import datetime

from sse_heartbeat.config import DEFAULT_SETTINGS
from sse_heartbeat.core.events import (
    StreamEvent,
    connected_event,
    format_event,
    tick_event,
    utcnow,
)
from sse_heartbeat.exceptions import StreamClosedError

logger = logging.getLogger(__name__)


class StreamState(enum.Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    CLOSED = "closed"


class HeartbeatStream:
    """Emit one connected event, then a tick every interval until closed.

    Args:
        interval: Seconds between ticks.
        connected_message: Message carried by the connected event.
        clock: Returns the current time; used for event timestamps.
        rng: Random source for tick sample values.

    Example:
        stream = HeartbeatStream(interval=1.5)
        async for frame in stream.frames():
            await send(frame)
    """

    def __init__(
        self,
        *,
        interval: float = DEFAULT_SETTINGS.tick_interval,
        connected_message: str = DEFAULT_SETTINGS.connected_message,
        clock: Callable[[], datetime] = utcnow,
        rng: random.Random | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self.interval = interval
        self.connected_message = connected_message
        self._clock = clock
        self._rng = rng or random.Random()

        self.state = StreamState.IDLE
        self.tick_count = 0
        self._queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        self._timer: asyncio.Task[None] | None = None

    @property
    def timer_active(self) -> bool:
        """True while the tick timer is armed."""
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        """Queue the connected event and arm the tick timer.

        Must be called from a running event loop. Starting a stream that is
        already streaming does nothing.

        Raises:
            StreamClosedError: If the stream was closed.
        """
        if self.state is StreamState.CLOSED:
            raise StreamClosedError("Cannot start a closed heartbeat stream")
        if self.state is StreamState.STREAMING:
            return

        self.state = StreamState.STREAMING
        self._emit(connected_event(self.connected_message, self._clock()))
        self._timer = asyncio.get_running_loop().create_task(self._run_timer())

        logger.info("Heartbeat stream opened", extra={"interval": self.interval})

    def close(self) -> None:
        """Disarm the timer and end the frame iterator. Safe to call repeatedly."""
        if self.state is StreamState.CLOSED:
            return

        self.state = StreamState.CLOSED
        if self._timer is not None:
            self._timer.cancel()
        # Wake a consumer blocked on the queue
        self._queue.put_nowait(None)

        logger.info("Heartbeat stream closed", extra={"ticks": self.tick_count})

    async def aclose(self) -> None:
        """Close the stream and wait until the timer task has finished."""
        self.close()
        if self._timer is not None:
            # wait() doesn't raise the timer's CancelledError into the caller
            await asyncio.wait({self._timer})

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield stream events in emission order until the stream closes.

        Starts the stream if it is idle. Leaving the iterator early (client
        disconnect, cancellation, an error in the caller) closes the stream.
        """
        self.start()
        try:
            while True:
                event = await self._queue.get()
                if event is None or self.state is StreamState.CLOSED:
                    return
                yield event
        finally:
            self.close()

    async def frames(self) -> AsyncIterator[str]:
        """Yield encoded text/event-stream frames. See events()."""
        # Own the inner generator so it is finalized with this one
        events = self.events()
        try:
            async for event in events:
                yield format_event(event)
        finally:
            await events.aclose()

    def _emit(self, event: StreamEvent) -> None:
        if self.state is not StreamState.STREAMING:
            return
        self._queue.put_nowait(event)

    def _next_tick(self) -> StreamEvent:
        self.tick_count += 1
        return tick_event(self.tick_count, self._clock(), self._rng)

    async def _run_timer(self) -> None:
        while self.state is StreamState.STREAMING:
            await asyncio.sleep(self.interval)
            if self.state is not StreamState.STREAMING:
                break
            event = self._next_tick()
            logger.debug("Tick", extra={"tick_id": event.payload["id"]})
            self._emit(event)
