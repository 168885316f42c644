"""Clone-or-pull sync of context repositories.

Canonical routine for mirroring the registry repos into a directory, either
on the local volume (LocalGitRunner) or inside a Daytona sandbox
(SandboxGitRunner). Repos sync concurrently under a fixed ceiling and one
repo failing never cancels its siblings.
"""

import asyncio
import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol, Sequence

from pydantic import BaseModel

from config.repos import RepoDescriptor

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5
DEFAULT_BRANCH = "main"


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    output: str = ""


class SyncResult(BaseModel):
    """Outcome of syncing one repo: a path on success, an error otherwise."""
    name: str
    path: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class GitRunner(Protocol):
    """Where git commands for a sync run."""

    def join(self, base_dir, name: str) -> str:
        ...

    async def ensure_dir(self, path: str) -> None:
        ...

    async def is_dir(self, path: str) -> bool:
        ...

    async def run(self, args: Sequence[str], cwd: str | None = None, label: str = "") -> CommandResult:
        ...


class LocalGitRunner:
    """Runs git as a local subprocess, streaming output to the logger."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def join(self, base_dir, name: str) -> str:
        return str(Path(base_dir) / name)

    async def ensure_dir(self, path: str) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    async def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    async def run(self, args: Sequence[str], cwd: str | None = None, label: str = "") -> CommandResult:
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        lines = []
        try:
            async for raw in proc.stdout:
                line = raw.decode(errors="replace").rstrip()
                lines.append(line)
                self.log.info("[%s] %s", label, line)
            await proc.wait()
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
        return CommandResult(exit_code=proc.returncode, output="\n".join(lines))


class SandboxGitRunner:
    """Runs git inside a Daytona sandbox via its process API."""

    def __init__(self, sandbox, log: logging.Logger | None = None):
        self.sandbox = sandbox
        self.log = log or logger

    def join(self, base_dir, name: str) -> str:
        return str(PurePosixPath(str(base_dir)) / name)

    async def ensure_dir(self, path: str) -> None:
        await self.sandbox.create_folder(path, "755")

    async def is_dir(self, path: str) -> bool:
        target = PurePosixPath(path)
        entries = await self.sandbox.list_files(str(target.parent))
        return any(entry.is_dir and entry.name == target.name for entry in entries)

    async def run(self, args: Sequence[str], cwd: str | None = None, label: str = "") -> CommandResult:
        result = await self.sandbox.exec(shlex.join(args), cwd=cwd)
        for line in (result.output or "").splitlines():
            self.log.info("[%s] %s", label, line)
        return result


def clone_command(repo: RepoDescriptor, target: str) -> list[str]:
    """Shallow single-branch clone of the repo into target."""
    return [
        "git", "clone",
        "--depth", "1",
        "--single-branch",
        "--branch", repo.branch or DEFAULT_BRANCH,
        repo.url,
        target,
    ]


def pull_command() -> list[str]:
    return ["git", "pull"]


async def sync_repo(
    repo: RepoDescriptor,
    base_dir,
    runner: GitRunner,
    log: logging.Logger | None = None,
) -> SyncResult:
    """Clone the repo if absent, pull it if present.

    The existing checkout is pulled as-is: the branch and remote are not
    verified, so a tree left on another branch stays there.

    Returns:
        SyncResult with the repo path, or the error that stopped it
    """
    log = log or logger
    target = runner.join(base_dir, repo.name)

    try:
        if await runner.is_dir(target):
            log.info("Pulling repo %s...", repo.name)
            log.debug("Pulling %s without branch verification (expected %s)", target, repo.branch)
            action = "pull"
            result = await runner.run(pull_command(), cwd=target, label=repo.name)
        else:
            log.info("Cloning repo %s...", repo.name)
            action = "clone"
            result = await runner.run(clone_command(repo, target), label=repo.name)
    except Exception as e:
        return SyncResult(name=repo.name, error=f"failed to sync repo {repo.name}: {e}")

    if result.exit_code != 0:
        detail = result.output.strip().splitlines()[-1] if result.output.strip() else ""
        message = f"git {action} exited with code {result.exit_code}"
        if detail:
            message = f"{message}: {detail}"
        return SyncResult(name=repo.name, error=message)

    log.info("Synced repo %s", repo.name)
    return SyncResult(name=repo.name, path=target)


async def sync_repos(
    repos: Sequence[RepoDescriptor],
    base_dir,
    runner: GitRunner | None = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    log: logging.Logger | None = None,
) -> list[SyncResult]:
    """Sync every repo into base_dir with at most `concurrency` in flight.

    Args:
        repos: Repos to sync (duplicates are synced twice, last write wins)
        base_dir: Directory holding one working tree per repo name
        runner: Where git runs (defaults to LocalGitRunner)
        concurrency: Maximum simultaneous clone/pull operations
        log: Logger for progress and failures

    Returns:
        One SyncResult per repo, in input order
    """
    log = log or logger
    runner = runner or LocalGitRunner(log)
    semaphore = asyncio.Semaphore(concurrency)

    await runner.ensure_dir(str(base_dir))

    async def bounded(repo: RepoDescriptor) -> SyncResult:
        async with semaphore:
            return await sync_repo(repo, base_dir, runner, log)

    results = await asyncio.gather(*[bounded(repo) for repo in repos])

    for result in results:
        if not result.ok:
            log.error("%s failed to sync: %s", result.name, result.error)

    return list(results)


def succeeded(results: Sequence[SyncResult]) -> list[SyncResult]:
    return [r for r in results if r.ok]
