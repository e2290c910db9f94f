"""Exception hierarchy for heartbeat streaming errors."""


class HeartbeatError(Exception):
    """Base exception for all errors raised by sse-heartbeat.

    Catching this exception will catch every error raised by the
    emitter, the event-source client and route discovery.

    Example:
        try:
            app = create_app()
        except HeartbeatError as e:
            logger.error(f"Failed to build app: {e}")
    """


class EventFormatError(HeartbeatError):
    """Raised when a stream event payload cannot be encoded as JSON.

    The emitter does not recover from this: the error propagates to the
    transport and the connection closes.

    Example:
        EventFormatError("Payload for event 'tick' is not JSON-serializable")
    """


class StreamClosedError(HeartbeatError):
    """Raised when a closed heartbeat stream is started again.

    CLOSED is a terminal state. A new connection needs a new stream.
    """


class SubscriptionError(HeartbeatError):
    """Raised when an event source cannot use the server's response.

    The event source records this as its last error when the response
    status is not 200 or the content type is not text/event-stream.
    Such failures are not retried.

    Example:
        SubscriptionError("Unexpected status 503 from http://localhost:8000/api/events")
    """


class RouteDiscoveryError(HeartbeatError):
    """Raised when the route directory doesn't exist or can't be scanned.

    Example:
        RouteDiscoveryError("Base path '/srv/app' does not exist")
    """


class PathParseError(HeartbeatError):
    """Raised when a route directory name is not a valid URL segment.

    Directory names must be lowercase letters, digits, '-' or '_'.

    Example:
        PathParseError("Invalid segment 'Events!' in /srv/app/Events!/route.py")
    """


class RouteValidationError(HeartbeatError):
    """Raised for invalid exports or import errors in a route.py file.

    Example:
        RouteValidationError(
            "Invalid export(s) ['helper'] in route.py\\n"
            "  Hint: Prefix helper functions with underscore: _helper"
        )
    """


class DuplicateRouteError(HeartbeatError):
    """Raised when two route files resolve to the same path+method.

    Example:
        DuplicateRouteError("Duplicate route: GET /api/events")
    """
