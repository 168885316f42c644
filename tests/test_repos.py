"""Unit tests for sandbox/repos.py clone-or-pull sync."""

import asyncio
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from config.repos import RepoDescriptor, get_repo
from sandbox.repos import (
    CommandResult,
    LocalGitRunner,
    SandboxGitRunner,
    clone_command,
    succeeded,
    sync_repo,
    sync_repos,
)


def make_repo(name, branch="main"):
    return RepoDescriptor(name=name, url=f"https://example.com/{name}.git", branch=branch)


class FakeRunner:
    """Records git invocations; existing dirs and failures are configurable."""

    def __init__(self, existing=(), failing=(), raising=(), delay=0.0):
        self.existing = set(existing)
        self.failing = set(failing)
        self.raising = set(raising)
        self.delay = delay
        self.calls = []
        self.ensured = []
        self.in_flight = 0
        self.max_in_flight = 0

    def join(self, base_dir, name):
        return f"{base_dir}/{name}"

    async def ensure_dir(self, path):
        self.ensured.append(path)

    async def is_dir(self, path):
        return path in self.existing

    async def run(self, args, cwd=None, label=""):
        self.calls.append((label, list(args), cwd))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if label in self.raising:
                raise OSError("network unreachable")
            if label in self.failing:
                return CommandResult(exit_code=128, output="Cloning...\nfatal: repository not found")
            return CommandResult(exit_code=0, output="done")
        finally:
            self.in_flight -= 1


class TestCloneCommand:
    """Tests for clone_command."""

    def test_shallow_single_branch(self):
        args = clone_command(get_repo("opencode"), "/context/repos/opencode")
        assert args == [
            "git", "clone", "--depth", "1", "--single-branch",
            "--branch", "production",
            "https://github.com/sst/opencode",
            "/context/repos/opencode",
        ]


class TestSyncRepo:
    """Tests for sync_repo."""

    @pytest.mark.asyncio
    async def test_clones_when_absent(self):
        runner = FakeRunner()
        result = await sync_repo(make_repo("effect"), "/repos", runner)

        assert result.ok
        assert result.path == "/repos/effect"
        label, args, cwd = runner.calls[0]
        assert args[:2] == ["git", "clone"]
        assert args[-1] == "/repos/effect"
        assert cwd is None

    @pytest.mark.asyncio
    async def test_pulls_when_present(self):
        runner = FakeRunner(existing={"/repos/effect"})
        result = await sync_repo(make_repo("effect"), "/repos", runner)

        assert result.ok
        assert runner.calls == [("effect", ["git", "pull"], "/repos/effect")]

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_error(self):
        runner = FakeRunner(failing={"effect"})
        result = await sync_repo(make_repo("effect"), "/repos", runner)

        assert not result.ok
        assert result.path is None
        assert "git clone exited with code 128" in result.error
        assert "repository not found" in result.error

    @pytest.mark.asyncio
    async def test_runner_exception_is_error(self):
        runner = FakeRunner(raising={"effect"})
        result = await sync_repo(make_repo("effect"), "/repos", runner)

        assert not result.ok
        assert "network unreachable" in result.error


class TestSyncRepos:
    """Tests for sync_repos."""

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_siblings(self):
        repos = [make_repo(n) for n in ("a", "b", "c", "d")]
        runner = FakeRunner(failing={"b"}, raising={"d"})

        results = await sync_repos(repos, "/repos", runner=runner)

        assert [r.name for r in results] == ["a", "b", "c", "d"]
        assert [r.ok for r in results] == [True, False, True, False]
        assert [r.name for r in succeeded(results)] == ["a", "c"]
        assert runner.ensured == ["/repos"]

    @pytest.mark.asyncio
    async def test_concurrency_ceiling(self):
        repos = [make_repo(f"repo{i}") for i in range(12)]
        runner = FakeRunner(delay=0.01)

        results = await sync_repos(repos, "/repos", runner=runner)

        assert len(results) == 12
        assert runner.max_in_flight == 5

    @pytest.mark.asyncio
    async def test_custom_concurrency(self):
        repos = [make_repo(f"repo{i}") for i in range(4)]
        runner = FakeRunner(delay=0.01)

        await sync_repos(repos, "/repos", runner=runner, concurrency=1)

        assert runner.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_empty(self):
        runner = FakeRunner()
        assert await sync_repos([], "/repos", runner=runner) == []


class TestLocalGitRunner:
    """Tests for LocalGitRunner against real subprocesses."""

    @pytest.mark.asyncio
    async def test_captures_output_and_exit_code(self):
        runner = LocalGitRunner()
        result = await runner.run([sys.executable, "-c", "print('hello'); raise SystemExit(3)"], label="t")

        assert result.exit_code == 3
        assert result.output == "hello"

    @pytest.mark.asyncio
    async def test_spawn_failure_becomes_sync_error(self, tmp_path, monkeypatch):
        runner = LocalGitRunner()
        monkeypatch.setattr("sandbox.repos.clone_command", lambda repo, target: ["/nonexistent/git-binary"])

        result = await sync_repo(make_repo("effect"), tmp_path, runner)

        assert not result.ok
        assert "failed to sync repo effect" in result.error

    @pytest.mark.asyncio
    async def test_directories(self, tmp_path):
        runner = LocalGitRunner()
        target = runner.join(tmp_path, "nested")

        assert await runner.is_dir(target) is False
        await runner.ensure_dir(target)
        assert await runner.is_dir(target) is True


class TestSandboxGitRunner:
    """Tests for SandboxGitRunner over a mocked sandbox."""

    @pytest.mark.asyncio
    async def test_is_dir_lists_parent(self):
        sandbox = AsyncMock()
        sandbox.list_files.return_value = [
            SimpleNamespace(name="effect", is_dir=True),
            SimpleNamespace(name="notes.txt", is_dir=False),
        ]
        runner = SandboxGitRunner(sandbox)

        assert await runner.is_dir("/context/repos/effect") is True
        assert await runner.is_dir("/context/repos/notes.txt") is False
        sandbox.list_files.assert_awaited_with("/context/repos")

    @pytest.mark.asyncio
    async def test_run_quotes_args(self):
        sandbox = AsyncMock()
        sandbox.exec.return_value = CommandResult(exit_code=0, output="ok")
        runner = SandboxGitRunner(sandbox)

        await runner.run(["git", "clone", "https://x/y z"], cwd="/w", label="y")

        sandbox.exec.assert_awaited_once_with("git clone 'https://x/y z'", cwd="/w")
