"""Integration tests for API routes (routes.py + main.py)."""

import inspect

import pytest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient

from redirection.api import routes
from redirection.api.routes import API_DESCRIPTOR
from redirection.services.database_status import DB_UPGRADE_STAGE
from redirection.services.stage_runner import STAGE_HANDLERS
from redirection.utils.versioning import TARGET_DB_VERSION


@pytest.fixture
def client(store):
    """TestClient with logging and the option store redirected to tmp_path."""
    from redirection.main import app

    with patch("redirection.main.setup_logger") as mock_log:
        mock_log.return_value = MagicMock()
        with patch("redirection.main.OptionStore", return_value=store):
            with patch("redirection.api.routes.OptionStore", return_value=store):
                with TestClient(app, raise_server_exceptions=True) as c:
                    yield c


@pytest.fixture
def install_handlers(monkeypatch):
    """Register no-op bodies for the install stages."""
    calls = []
    monkeypatch.setitem(STAGE_HANDLERS, "create_tables", lambda: calls.append("create_tables"))
    monkeypatch.setitem(STAGE_HANDLERS, "create_groups", lambda: calls.append("create_groups"))
    return calls


@pytest.mark.unit
class TestRoot:
    """GET /"""

    def test_health_check(self, client):
        resp = client.get("/")

        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


@pytest.mark.unit
class TestGetDatabaseStatus:
    """GET /api/v1.0/database/status"""

    def test_up_to_date(self, client, set_version):
        set_version(TARGET_DB_VERSION)

        resp = client.get("/api/v1.0/database/status")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "inProgress": False}

    def test_need_update_includes_api(self, client, set_version):
        set_version("1.0")

        body = client.get("/api/v1.0/database/status").json()

        assert body["status"] == "need-update"
        assert body["current"] == "1.0"
        assert body["next"] == TARGET_DB_VERSION
        assert body["api"] == API_DESCRIPTOR
        assert "time" in body

    def test_does_not_mutate(self, client, set_version, store):
        set_version("1.0")

        client.get("/api/v1.0/database/status")

        assert store.get(DB_UPGRADE_STAGE) is None


@pytest.mark.unit
class TestPostDatabaseUpgrade:
    """POST /api/v1.0/database/upgrade"""

    def test_install_flow(self, client, install_handlers, store):
        first = client.post("/api/v1.0/database/upgrade", json={}).json()
        second = client.post("/api/v1.0/database/upgrade", json={"upgrade": None}).json()

        assert install_handlers == ["create_tables", "create_groups"]
        assert first["status"] == "need-install"
        assert first["inProgress"] is True
        assert first["complete"] == 50.0
        assert first["reason"] == "Install Redirection tables"
        assert second == {
            "status": "finish-install",
            "inProgress": False,
            "complete": 100,
            "reason": "Create basic data",
        }
        assert store.get_plugin_options()["database"] == TARGET_DB_VERSION

    def test_stage_failure_is_a_normal_response(self, client, set_version):
        set_version("1.0")

        resp = client.post("/api/v1.0/database/upgrade", json={})

        assert resp.status_code == 200
        body = resp.json()
        assert body["result"] == "error"
        assert body["reason"] == "No stage found for upgrade add_title_201"
        assert isinstance(body["debug"], dict)

    def test_stop(self, client, set_version, store):
        set_version("1.0")
        client.post("/api/v1.0/database/upgrade", json={})

        body = client.post("/api/v1.0/database/upgrade", json={"upgrade": "stop"}).json()

        assert body["inProgress"] is False
        assert store.get(DB_UPGRADE_STAGE) is None

    def test_invalid_action_rejected(self, client):
        resp = client.post("/api/v1.0/database/upgrade", json={"upgrade": "explode"})

        assert resp.status_code == 422

    def test_up_to_date_reports_error(self, client, set_version):
        set_version(TARGET_DB_VERSION)

        body = client.post("/api/v1.0/database/upgrade", json={}).json()

        assert body["status"] == "ok"
        assert body["result"] == "error"
        assert body["reason"] == f"Your database does not need updating to {TARGET_DB_VERSION}."
        assert isinstance(body["debug"], dict)

    def test_stop_when_up_to_date_clears_stale_record(self, client, set_version, store):
        set_version(TARGET_DB_VERSION)
        store.set(DB_UPGRADE_STAGE, {"stage": "create_tables", "stages": ["create_tables"], "mode": "install"})

        body = client.post("/api/v1.0/database/upgrade", json={"upgrade": "stop"}).json()

        assert body == {"status": "ok", "inProgress": False}
        assert store.get(DB_UPGRADE_STAGE) is None


@pytest.mark.unit
class TestHandlersRunInThreadpool:
    """Blocking handlers are plain functions."""

    def test_handlers_are_sync(self):
        assert not inspect.iscoroutinefunction(routes.get_database_status)
        assert not inspect.iscoroutinefunction(routes.post_database_upgrade)

