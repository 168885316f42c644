"""Tests for the sandbox HTTP server (api/server.py)."""

import pytest
from fastapi.testclient import TestClient

from api.server import app, get_launcher
from sandbox.daytona import SandboxError
from sandbox.opencode import AccessInfo


class FakeLauncher:
    def __init__(self, error=None):
        self.error = error
        self.variants = []

    async def launch(self, variant):
        self.variants.append(variant)
        if self.error:
            raise self.error
        return AccessInfo(
            sandbox_id="sb-1",
            url="https://8080-sb-1.proxy.daytona.works",
            ssh="ssh tok@ssh.app.daytona.io",
        )


@pytest.fixture
def launcher():
    fake = FakeLauncher()
    app.dependency_overrides[get_launcher] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def client(launcher):
    return TestClient(app)


class TestIndex:
    def test_lists_available(self, client):
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["available"] == ["effect", "opencode", "svelte", "daytona", "neverthrow"]
        assert body["usage"] == "POST /sandbox/:name to create a sandbox"


class TestCreateSandbox:
    """Tests for POST /sandbox/{name}."""

    def test_creates(self, client, launcher):
        response = client.post("/sandbox/svelte")

        assert response.status_code == 200
        assert response.json() == {
            "url": "https://8080-sb-1.proxy.daytona.works",
            "ssh": "ssh tok@ssh.app.daytona.io",
        }
        variant = launcher.variants[0]
        assert variant.snapshot == "svelte-docs-snapshot"
        assert variant.auto_stop_minutes == 120
        assert variant.startup_delay == 2
        assert variant.ssh_expires_minutes == 24

    def test_creates_opencode(self, client):
        response = client.post("/sandbox/opencode")

        assert response.status_code == 200
        assert response.json()["ssh"] == "ssh tok@ssh.app.daytona.io"

    def test_invalid_name(self, client, launcher):
        response = client.post("/sandbox/react")

        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid sandbox name. Valid: effect, opencode, svelte, daytona, neverthrow"
        }
        assert launcher.variants == []

    def test_workspace_not_offered(self, client):
        assert client.post("/sandbox/workspace").status_code == 400

    def test_launch_failure(self, client, launcher):
        launcher.error = SandboxError("failed to create sandbox")

        response = client.post("/sandbox/effect")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to create sandbox"}


class TestNotFound:
    """Unknown routes and methods."""

    def test_unknown_path(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}

    def test_wrong_method(self, client):
        response = client.get("/sandbox/effect")
        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}


class TestDependencyFailure:
    def test_missing_api_key_is_500(self, monkeypatch):
        monkeypatch.delenv("DAYTONA_API_KEY", raising=False)
        app.dependency_overrides.clear()

        response = TestClient(app).post("/sandbox/effect")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to create sandbox"}
