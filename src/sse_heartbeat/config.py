"""Runtime settings for the heartbeat server and consumer."""

from dataclasses import dataclass

from starlette.requests import Request

# URL of the bundled stream route (app/api/events/route.py)
EVENTS_PATH = "/api/events"

# Client-side log capacity
DEFAULT_LOG_CAPACITY = 20

# Seconds an event source waits before reconnecting, until the server sends retry:
DEFAULT_RETRY_DELAY = 3.0


@dataclass(frozen=True)
class StreamSettings:
    """Settings for the heartbeat emitter.

    Attributes:
        tick_interval: Seconds between two tick events on one connection.
        connected_message: Message carried by the connected event.
    """

    tick_interval: float = 1.5
    connected_message: str = "SSE stream opened"

    def __post_init__(self) -> None:
        if self.tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {self.tick_interval}")


DEFAULT_SETTINGS = StreamSettings()


def get_settings(request: Request) -> StreamSettings:
    """Return the settings stored on the application, or the defaults."""
    return getattr(request.app.state, "settings", DEFAULT_SETTINGS)
