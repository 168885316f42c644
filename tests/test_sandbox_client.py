"""Tests for clients/sandbox_client.py against the FastAPI app."""

import httpx
import pytest
from fastapi.testclient import TestClient

from api.server import app, get_launcher
from clients.sandbox_client import create_sandbox, get_base_url, get_http_client, list_available
from sandbox.daytona import SandboxError
from sandbox.opencode import AccessInfo


class FakeLauncher:
    def __init__(self, error=None):
        self.error = error

    async def launch(self, variant):
        if self.error:
            raise self.error
        return AccessInfo(sandbox_id="sb-1", url="https://preview", ssh="ssh tok@ssh.app.daytona.io")


@pytest.fixture
def launcher():
    fake = FakeLauncher()
    app.dependency_overrides[get_launcher] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def http(launcher):
    return TestClient(app)


class TestListAvailable:
    def test_returns_names(self, http, capsys):
        names = list_available(http=http)

        assert names == ["effect", "opencode", "svelte", "daytona", "neverthrow"]
        assert "  svelte" in capsys.readouterr().out

    def test_quiet(self, http, capsys):
        list_available(verbose=False, http=http)
        assert capsys.readouterr().out == ""


class TestCreateSandbox:
    """Tests for create_sandbox."""

    def test_returns_url_and_ssh(self, http, capsys):
        result = create_sandbox("effect", http=http)

        assert result == {"url": "https://preview", "ssh": "ssh tok@ssh.app.daytona.io"}
        assert "opencode attach https://preview" in capsys.readouterr().out

    def test_invalid_name_raises_value_error(self, http):
        with pytest.raises(ValueError, match="Invalid sandbox name. Valid: effect"):
            create_sandbox("react", verbose=False, http=http)

    def test_server_failure_raises(self, http, launcher):
        launcher.error = SandboxError("failed to create sandbox")

        with pytest.raises(httpx.HTTPStatusError):
            create_sandbox("effect", verbose=False, http=http)


class TestBaseUrl:
    def test_reads_server_url(self, monkeypatch):
        monkeypatch.setenv("SANDBOX_SERVER_URL", "http://sandboxes.internal:9000/")

        assert get_base_url() == "http://sandboxes.internal:9000"
        base_url = get_http_client().base_url
        assert (base_url.host, base_url.port) == ("sandboxes.internal", 9000)

    def test_default(self, monkeypatch):
        monkeypatch.delenv("SANDBOX_SERVER_URL", raising=False)
        assert get_base_url() == "http://localhost:8080"
