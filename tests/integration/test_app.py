"""Tests for the application factory."""

from pathlib import Path

from fastapi.testclient import TestClient

from sse_heartbeat.config import DEFAULT_SETTINGS, EVENTS_PATH, StreamSettings
from sse_heartbeat.fastapi.app import APP_DIR, create_app


class TestCreateApp:
    def test_bundled_route_is_mounted(self):
        app = create_app()

        paths = {route.path for route in app.routes}
        assert EVENTS_PATH in paths

    def test_settings_stored_on_state(self):
        settings = StreamSettings(tick_interval=0.5)
        assert create_app(settings).state.settings is settings

    def test_default_settings(self):
        assert create_app().state.settings == DEFAULT_SETTINGS

    def test_openapi_describes_the_stream(self):
        client = TestClient(create_app())

        schema = client.get("/openapi.json").json()
        operation = schema["paths"][EVENTS_PATH]["get"]

        assert operation["tags"] == ["events"]
        assert operation["summary"] == "Stream heartbeat events"

    def test_unknown_path_is_404(self):
        assert TestClient(create_app()).get("/api/nothing").status_code == 404

    def test_post_is_not_allowed(self):
        assert TestClient(create_app()).post(EVENTS_PATH).status_code == 405

    def test_custom_routes_dir(self, tmp_path: Path, create_route_file):
        create_route_file('def get():\n    return {"ok": True}\n', subdir="health")

        client = TestClient(create_app(routes_dir=tmp_path))

        assert client.get("/health").json() == {"ok": True}
        assert client.get(EVENTS_PATH).status_code == 404

    def test_app_dir_ships_the_events_route(self):
        assert (APP_DIR / "api" / "events" / "route.py").is_file()
