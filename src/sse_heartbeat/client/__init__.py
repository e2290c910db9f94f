"""Event-source client for consuming heartbeat streams."""

from sse_heartbeat.client.eventsource import HttpxEventSource, ReadyState

__all__ = ["HttpxEventSource", "ReadyState"]
