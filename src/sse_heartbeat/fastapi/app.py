"""Application factory for the heartbeat server."""

from pathlib import Path

from fastapi import FastAPI

from sse_heartbeat.config import StreamSettings
from sse_heartbeat.fastapi.router import create_router_from_path

# Route modules shipped with the package (app/api/events/route.py, ...)
APP_DIR = Path(__file__).resolve().parent.parent / "app"


def create_app(
    settings: StreamSettings | None = None,
    *,
    routes_dir: str | Path = APP_DIR,
) -> FastAPI:
    """Build a FastAPI instance serving the heartbeat stream.

    Args:
        settings: Emitter settings; stored on app.state for route handlers.
        routes_dir: Directory of route.py files to mount.

    Run with:
        uvicorn --factory sse_heartbeat.fastapi.app:create_app
    """
    application = FastAPI(title="SSE Heartbeat")
    application.state.settings = settings or StreamSettings()
    application.include_router(create_router_from_path(routes_dir))
    return application
