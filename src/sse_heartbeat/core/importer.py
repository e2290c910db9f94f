"""Module importer for route files.

Dynamically imports route.py modules and extracts HTTP method handlers.
Validates that only allowed exports (HTTP verbs) are present.
"""

import importlib.util
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any

from sse_heartbeat.exceptions import RouteValidationError

# HTTP methods that can be exported from route.py files
ALLOWED_HANDLERS: frozenset[str] = frozenset(
    {"get", "post", "put", "patch", "delete", "head", "options"}
)

# Namespace for imported route modules in sys.modules
_MODULE_PREFIX = "_sse_heartbeat_routes"


@dataclass(frozen=True)
class RouteMetadata:
    """Metadata extracted from a route module's constants.

    Attributes:
        tags: List of OpenAPI tags for the route.
        summary: OpenAPI summary for the route.
        deprecated: Whether the route is deprecated.
    """

    tags: list[str] | None = None
    summary: str | None = None
    deprecated: bool = False


@dataclass(frozen=True)
class ExtractedRoute:
    """Handlers and metadata extracted from a route.py module.

    Attributes:
        handlers: Dictionary mapping HTTP method names to handler functions.
        metadata: Route metadata (tags, summary, deprecated).
    """

    handlers: dict[str, Callable[..., Any]]
    metadata: RouteMetadata


def _module_name(file_path: Path, base_path: Path | None) -> str:
    """Build a deterministic sys.modules name for a route file.

    Examples:
        <base>/api/events/route.py -> _sse_heartbeat_routes.api.events.route
    """
    rel_path = file_path
    if base_path is not None:
        try:
            rel_path = file_path.relative_to(base_path.resolve())
        except ValueError:
            pass

    parts = [p.replace("-", "_").replace(".", "_") for p in rel_path.with_suffix("").parts]
    parts = [p for p in parts if p and p != "/"]
    return ".".join([_MODULE_PREFIX, *parts])


def import_route_module(file_path: Path, *, base_path: Path | None = None) -> ModuleType:
    """Import a route.py file as a Python module.

    Args:
        file_path: Path to the route.py file.
        base_path: Optional base directory used to name the module.

    Returns:
        The imported module. Re-importing the same file returns the cached module.

    Raises:
        RouteValidationError: If the file doesn't exist or import fails.
    """
    resolved = file_path.resolve()

    if resolved.name != "route.py":
        raise RouteValidationError(f"Invalid route file name: {resolved.name}")
    if not resolved.exists():
        raise RouteValidationError(f"Route file does not exist: {resolved}")

    module_name = _module_name(resolved, base_path)

    cached = sys.modules.get(module_name)
    if cached is not None and getattr(cached, "__file__", None) == str(resolved):
        return cached

    spec = importlib.util.spec_from_file_location(module_name, resolved)
    if spec is None or spec.loader is None:
        raise RouteValidationError(f"Cannot create module spec for: {resolved}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module

    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        del sys.modules[module_name]
        raise RouteValidationError(
            f"Failed to import module: {resolved}\nError: {type(exc).__name__}: {exc}"
        ) from exc

    return module


def extract_handlers(module: ModuleType, file_path: Path) -> ExtractedRoute:
    """Extract HTTP method handlers and metadata from a route module.

    Args:
        module: The imported route module.
        file_path: Path to the route file (for error messages).

    Returns:
        ExtractedRoute containing handlers and metadata.

    Raises:
        RouteValidationError: If invalid exports are found.
    """
    handlers: dict[str, Callable[..., Any]] = {}
    invalid_exports: list[str] = []

    tags = getattr(module, "TAGS", None)
    metadata = RouteMetadata(
        tags=list(tags) if tags else None,
        summary=getattr(module, "SUMMARY", None),
        deprecated=bool(getattr(module, "DEPRECATED", False)),
    )

    for name in dir(module):
        # Skip private helpers and uppercase constants (TAGS, SUMMARY, etc.)
        if name.startswith("_") or name.isupper():
            continue

        obj = getattr(module, name)

        if not callable(obj):
            continue

        # Skip imported classes/functions
        if getattr(obj, "__module__", None) != module.__name__:
            continue

        if name.lower() in ALLOWED_HANDLERS:
            handlers[name.lower()] = obj
        else:
            invalid_exports.append(name)

    # Fail fast on invalid exports
    if invalid_exports:
        raise RouteValidationError(
            f"Invalid export(s) {invalid_exports} in route.py\n"
            f"  File: {file_path}\n"
            f"  Hint: Only HTTP verbs ({', '.join(sorted(ALLOWED_HANDLERS))}) are allowed.\n"
            f"        Prefix helper functions with underscore: _{invalid_exports[0]}"
        )

    return ExtractedRoute(handlers=handlers, metadata=metadata)


def load_route(file_path: Path, *, base_path: Path | None = None) -> ExtractedRoute:
    """Import a route.py file and extract its handlers."""
    module = import_route_module(file_path, base_path=base_path)
    return extract_handlers(module, file_path)
