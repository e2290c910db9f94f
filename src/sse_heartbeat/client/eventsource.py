"""Reconnecting event-source client built on httpx and httpx-sse.

Behaves like a browser EventSource: it dispatches named events to
listeners, reports open and error transitions, reconnects after network
failures or end of stream, honors the server's retry field and resends
the last event id.

Example:
    source = HttpxEventSource("http://localhost:8000/api/events")
    source.add_listener("tick", lambda event: print(event.data))
    source.open()
    ...
    await source.aclose()
"""

import asyncio
import enum
import logging
from collections import defaultdict
from collections.abc import Callable, Mapping

import httpx
from httpx_sse import ServerSentEvent, aconnect_sse

from sse_heartbeat.config import DEFAULT_RETRY_DELAY
from sse_heartbeat.exceptions import SubscriptionError

logger = logging.getLogger(__name__)

Listener = Callable[[ServerSentEvent], None]


class ReadyState(enum.IntEnum):
    CONNECTING = 0
    OPEN = 1
    CLOSED = 2


class HttpxEventSource:
    """Subscription to a text/event-stream URL.

    Args:
        url: Stream endpoint.
        client: httpx.AsyncClient to use. When omitted the event source
            creates one and releases it once the source is closed.
        retry: Initial reconnection delay in seconds.
        headers: Extra request headers.

    Attributes:
        on_open: Called each time a connection is established.
        on_error: Called with the error (or None at end of stream) each
            time a connection fails or ends.
        ready_state: CONNECTING, OPEN or CLOSED.
        last_error: Most recent error, if any.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        retry: float = DEFAULT_RETRY_DELAY,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.url = url
        self.retry = retry
        self.headers = dict(headers or {})
        self._client = client
        self._owns_client = client is None
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)
        self._task: asyncio.Task[None] | None = None
        self._release_task: asyncio.Task[None] | None = None

        self.on_open: Callable[[], None] | None = None
        self.on_error: Callable[[BaseException | None], None] | None = None
        self.ready_state = ReadyState.CONNECTING
        self.last_event_id: str | None = None
        self.last_error: BaseException | None = None

    def add_listener(self, event_type: str, callback: Listener) -> None:
        self._listeners[event_type].append(callback)

    def remove_listener(self, event_type: str, callback: Listener) -> None:
        if callback in self._listeners.get(event_type, []):
            self._listeners[event_type].remove(callback)

    def open(self) -> None:
        """Start connecting in the background. Must run inside an event loop."""
        if self._task is not None or self.ready_state is ReadyState.CLOSED:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def close(self) -> None:
        """Stop the subscription and detach every callback. Idempotent.

        An owned client is released in the background; aclose() waits for it.
        """
        self.ready_state = ReadyState.CLOSED
        self._listeners.clear()
        self.on_open = None
        self.on_error = None
        if self._task is not None and not self._task.done():
            self._task.cancel()

        if self._owns_client and self._task is not None and self._release_task is None:
            self._release_task = self._task.get_loop().create_task(self._release())

    async def aclose(self) -> None:
        """Close and wait for the connection task and owned client to finish."""
        self.close()
        if self._release_task is not None:
            await self._release_task
        else:
            await self._release()

    async def _release(self) -> None:
        if self._task is not None:
            await asyncio.wait({self._task})
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.aclose()
            logger.debug("Event source client released", extra={"url": self.url})

    async def _run(self) -> None:
        while self.ready_state is not ReadyState.CLOSED:
            # Stays None when the server ends the stream; reconnect like a browser would
            error: BaseException | None = None
            try:
                await self._connect()
            except SubscriptionError as exc:
                self.last_error = exc
                logger.warning("Event source failed", extra={"url": self.url, "error": str(exc)})
                callback = self.on_error
                self.ready_state = ReadyState.CLOSED
                if callback is not None:
                    callback(exc)
                return
            except httpx.HTTPError as exc:
                error = exc
                self.last_error = exc

            if self.ready_state is ReadyState.CLOSED:
                return

            self.ready_state = ReadyState.CONNECTING
            logger.warning(
                "Event source disconnected, reconnecting",
                extra={"url": self.url, "error": repr(error), "retry": self.retry},
            )
            if self.on_error is not None:
                self.on_error(error)

            await asyncio.sleep(self.retry)

    async def _connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(None, connect=10.0))

        # aconnect_sse adds Accept and Cache-Control
        headers = dict(self.headers)
        if self.last_event_id is not None:
            headers["Last-Event-ID"] = self.last_event_id

        async with aconnect_sse(self._client, "GET", self.url, headers=headers) as event_source:
            response = event_source.response
            content_type = response.headers.get("content-type", "")
            if response.status_code != 200:
                raise SubscriptionError(
                    f"Unexpected status {response.status_code} from {self.url}"
                )
            if content_type.split(";")[0].strip().lower() != "text/event-stream":
                raise SubscriptionError(
                    f"Unexpected content type '{content_type}' from {self.url}"
                )

            self.ready_state = ReadyState.OPEN
            logger.info("Event source open", extra={"url": self.url})
            if self.on_open is not None:
                self.on_open()

            async for event in event_source.aiter_sse():
                if event.id:
                    self.last_event_id = event.id
                if event.retry is not None:
                    self.retry = event.retry / 1000
                # Blocks without data carry only id or retry
                if event.data:
                    self._dispatch(event)
                if self.ready_state is ReadyState.CLOSED:
                    return

    def _dispatch(self, event: ServerSentEvent) -> None:
        if self.ready_state is ReadyState.CLOSED:
            return
        # Copy: a listener may close the source and clear the registry
        for listener in list(self._listeners.get(event.event, [])):
            try:
                listener(event)
            except Exception:
                # A failing listener must not end the connection
                logger.exception(
                    "Event listener failed", extra={"url": self.url, "event_type": event.event}
                )
