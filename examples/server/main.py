"""Heartbeat server example.

Serves the bundled app/api/events/route.py with a faster tick so the
stream is easy to watch.

Run with:
    python examples/server/main.py

Then:
    curl -N http://localhost:8000/api/events
"""

import logging

from sse_heartbeat import StreamSettings, create_app

logging.basicConfig(level=logging.INFO)

app = create_app(StreamSettings(tick_interval=1.0))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
