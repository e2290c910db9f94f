"""Router factory for route modules.

Composes the scanner and importer to create a FastAPI router from an
app directory.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from fastapi import APIRouter

from sse_heartbeat.core.importer import load_route
from sse_heartbeat.core.scanner import scan_routes
from sse_heartbeat.exceptions import DuplicateRouteError

logger = logging.getLogger(__name__)


def create_router_from_path(
    base_path: str | Path,
    *,
    prefix: str = "",
) -> APIRouter:
    """Create a FastAPI APIRouter from a directory of route.py files.

    Args:
        base_path: Root directory containing route.py files.
        prefix: Optional URL prefix for all discovered routes.

    Returns:
        A FastAPI APIRouter with all discovered routes registered.

    Raises:
        RouteDiscoveryError: If base_path doesn't exist or isn't a directory.
        PathParseError: If a directory name is not a valid URL segment.
        RouteValidationError: If a route file has invalid exports or fails to import.
        DuplicateRouteError: If two route files resolve to the same path+method.

    Example:
        app = FastAPI()
        app.include_router(create_router_from_path("app"))
    """
    base = Path(base_path).resolve()
    route_defs = scan_routes(base)

    logger.info(
        "Discovered route files",
        extra={"count": len(route_defs), "base_path": str(base)},
    )

    router = APIRouter(prefix=prefix)
    registered: dict[tuple[str, str], Path] = {}

    for route_def in route_defs:
        extracted = load_route(route_def.file_path, base_path=base)
        tags = extracted.metadata.tags or _derive_tags(route_def.path)

        for method, handler in extracted.handlers.items():
            route_key = (route_def.path, method.upper())
            if route_key in registered:
                raise DuplicateRouteError(
                    f"Duplicate route: {method.upper()} {route_def.path}\n"
                    f"  First: {registered[route_key]}\n"
                    f"  Second: {route_def.file_path}"
                )
            registered[route_key] = route_def.file_path

            _add_route(
                router,
                path=route_def.path,
                method=method,
                handler=handler,
                tags=tags,
                summary=extracted.metadata.summary,
                deprecated=extracted.metadata.deprecated,
            )

            logger.debug(
                "Registered route",
                extra={
                    "method": method.upper(),
                    "path": route_def.path,
                    "file": str(route_def.file_path),
                },
            )

    logger.info(
        "Route registration complete",
        extra={"route_count": len(registered), "prefix": prefix or "(none)"},
    )

    return router


def _add_route(
    router: APIRouter,
    *,
    path: str,
    method: str,
    handler: Callable[..., Any],
    tags: list[str],
    summary: str | None,
    deprecated: bool,
) -> None:
    kwargs: dict[str, Any] = {
        "tags": tags,
        "deprecated": deprecated,
        # Docstring becomes the OpenAPI description
        "description": handler.__doc__,
    }
    if summary is not None:
        kwargs["summary"] = summary

    router.add_api_route(path=path, endpoint=handler, methods=[method.upper()], **kwargs)


def _derive_tags(path: str) -> list[str]:
    """Derive OpenAPI tags from a URL path.

    Examples:
        /api/events -> ["api"]
        /           -> ["root"]
    """
    parts = [p for p in path.split("/") if p]
    return [parts[0]] if parts else ["root"]
