"""Directory scanner for route modules.

Walks an app directory to discover route.py files. Each directory name
below the base is one static URL segment:

    app/api/events/route.py -> /api/events
    app/route.py            -> /
"""

import re
from dataclasses import dataclass
from pathlib import Path

from sse_heartbeat.exceptions import PathParseError, RouteDiscoveryError

# Lowercase URL-safe segment: letters, digits, '-' and '_'
_VALID_SEGMENT = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


@dataclass(frozen=True)
class RouteDefinition:
    """A discovered route with its filesystem path.

    Attributes:
        path: URL path (e.g., /api/events)
        file_path: Absolute path to the route.py file
    """

    path: str
    file_path: Path

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(part for part in self.path.split("/") if part)


def scan_routes(base_path: Path | str) -> list[RouteDefinition]:
    """Scan a directory tree for route.py files.

    Args:
        base_path: Root directory to scan for route.py files.

    Returns:
        List of RouteDefinition objects sorted by path.

    Raises:
        RouteDiscoveryError: If base_path doesn't exist or isn't a directory.
        PathParseError: If any directory name is not a valid URL segment.
    """
    base = Path(base_path).resolve()

    if not base.exists():
        raise RouteDiscoveryError(f"Base path does not exist: {base}")
    if not base.is_dir():
        raise RouteDiscoveryError(f"Base path is not a directory: {base}")

    routes: list[RouteDefinition] = []

    for route_file in base.rglob("route.py"):
        relative_dir = route_file.parent.relative_to(base)

        # Skip __pycache__ and hidden directories
        if any(part == "__pycache__" or part.startswith(".") for part in relative_dir.parts):
            continue

        # Security: symlinks must not lead outside the base path
        if not _is_path_within(route_file.resolve(), base):
            continue

        for part in relative_dir.parts:
            if not _VALID_SEGMENT.match(part):
                raise PathParseError(
                    f"Invalid segment '{part}' in {route_file}\n"
                    "  Hint: Directory names must be lowercase letters, digits, '-' or '_'."
                )

        path = "/" + "/".join(relative_dir.parts)
        routes.append(RouteDefinition(path=path, file_path=route_file))

    return sorted(routes, key=lambda r: r.path)


def _is_path_within(path: Path, base: Path) -> bool:
    try:
        path.relative_to(base)
        return True
    except ValueError:
        return False
