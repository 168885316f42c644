"""Thin async wrapper over the Daytona SDK.

One method per SDK call used by the flows. Every SDK failure is re-raised
as SandboxError naming the step that failed, with the SDK exception chained;
nothing here retries.
"""

import logging
from contextlib import contextmanager

from daytona import (
    AsyncDaytona,
    CreateSandboxFromImageParams,
    CreateSandboxFromSnapshotParams,
    CreateSnapshotParams,
    DaytonaConfig,
    Resources,
    SessionExecuteRequest,
)
from pydantic import BaseModel

from config.utils import DocsSandboxError, Settings
from sandbox.repos import CommandResult

logger = logging.getLogger(__name__)

SSH_HOST = "ssh.app.daytona.io"


class SandboxError(DocsSandboxError):
    """A sandbox API call failed; the run cannot continue."""


class SandboxResources(BaseModel):
    """CPU cores, memory (GiB) and disk (GiB) requested for a sandbox."""
    cpu: int
    memory: int
    disk: int

    def to_sdk(self) -> Resources:
        return Resources(cpu=self.cpu, memory=self.memory, disk=self.disk)


@contextmanager
def sdk_step(step: str):
    """Map any SDK exception raised inside the block to SandboxError."""
    try:
        yield
    except DocsSandboxError:
        raise
    except Exception as e:
        raise SandboxError(f"failed to {step}") from e


def ssh_command(token: str) -> str:
    return f"ssh {token}@{SSH_HOST}"


class RemoteSandbox:
    """A running Daytona sandbox."""

    def __init__(self, sandbox, log: logging.Logger | None = None):
        self._sandbox = sandbox
        self.log = log or logger

    @property
    def id(self) -> str:
        return self._sandbox.id

    @property
    def raw(self):
        return self._sandbox

    async def create_folder(self, path: str, mode: str = "755") -> None:
        with sdk_step(f"create folder {path}"):
            await self._sandbox.fs.create_folder(path, mode)

    async def upload_file(self, content: bytes | str, path: str) -> None:
        if isinstance(content, str):
            content = content.encode()
        with sdk_step(f"upload {path}"):
            await self._sandbox.fs.upload_file(content, path)

    async def download_file(self, path: str) -> bytes:
        with sdk_step(f"download {path}"):
            return await self._sandbox.fs.download_file(path)

    async def list_files(self, path: str) -> list:
        with sdk_step(f"list files in {path}"):
            return await self._sandbox.fs.list_files(path)

    async def exec(self, command: str, cwd: str | None = None, timeout: int | None = None) -> CommandResult:
        with sdk_step(f"run '{command}'"):
            response = await self._sandbox.process.exec(command, cwd=cwd, timeout=timeout)
        return CommandResult(exit_code=response.exit_code, output=response.result or "")

    async def create_session(self, session_id: str) -> None:
        with sdk_step(f"create session {session_id}"):
            await self._sandbox.process.create_session(session_id)

    async def execute_session_command(self, session_id: str, command: str, run_async: bool = True) -> str | None:
        """Run a command in a session; returns the command id."""
        request = SessionExecuteRequest(command=command, run_async=run_async)
        with sdk_step(f"execute '{command}'"):
            response = await self._sandbox.process.execute_session_command(session_id, request)
        return response.cmd_id

    async def get_session_command_logs(self, session_id: str, cmd_id: str) -> str:
        with sdk_step("fetch command logs"):
            logs = await self._sandbox.process.get_session_command_logs(session_id, cmd_id)
        # Older SDKs return the raw string, newer ones a response with .output
        return logs if isinstance(logs, str) else (getattr(logs, "output", None) or "")

    async def get_session_command_exit_code(self, session_id: str, cmd_id: str) -> int | None:
        with sdk_step("fetch command status"):
            command = await self._sandbox.process.get_session_command(session_id, cmd_id)
        return command.exit_code

    async def delete_session(self, session_id: str) -> None:
        with sdk_step(f"delete session {session_id}"):
            await self._sandbox.process.delete_session(session_id)

    async def get_preview_url(self, port: int) -> str:
        with sdk_step("get preview link"):
            link = await self._sandbox.get_preview_link(port)
        return link.url

    async def create_ssh_access(self, expires_in_minutes: int = 60) -> str:
        """Mint an SSH token; returns the token."""
        with sdk_step("create ssh access"):
            access = await self._sandbox.create_ssh_access(expires_in_minutes=expires_in_minutes)
        return access.token


class DaytonaClient:
    """Owns the AsyncDaytona connection for one run.

    Usage::

        async with DaytonaClient.from_settings(settings) as client:
            sandbox = await client.create_from_snapshot("effect-docs-snapshot", env_vars={})
            ...
            await client.delete(sandbox)
    """

    def __init__(self, api_key: str, target: str = "us", log: logging.Logger | None = None):
        self.log = log or logger
        self._daytona = AsyncDaytona(DaytonaConfig(api_key=api_key, target=target))

    @classmethod
    def from_settings(cls, settings: Settings, log: logging.Logger | None = None) -> "DaytonaClient":
        return cls(settings.require_api_key(), target=settings.daytona_target, log=log)

    async def __aenter__(self) -> "DaytonaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._daytona.close()

    async def create_from_snapshot(
        self,
        snapshot: str,
        env_vars: dict[str, str],
        auto_stop_minutes: int = 0,
        public: bool = True,
    ) -> RemoteSandbox:
        params = CreateSandboxFromSnapshotParams(
            snapshot=snapshot,
            env_vars=env_vars,
            public=public,
            auto_stop_interval=auto_stop_minutes,
        )
        with sdk_step("create sandbox"):
            sandbox = await self._daytona.create(params)
        return RemoteSandbox(sandbox, self.log)

    async def create_from_image(
        self,
        image,
        resources: SandboxResources,
        env_vars: dict[str, str],
        auto_stop_minutes: int = 0,
        public: bool = True,
    ) -> RemoteSandbox:
        params = CreateSandboxFromImageParams(
            image=image,
            resources=resources.to_sdk(),
            env_vars=env_vars,
            public=public,
            auto_stop_interval=auto_stop_minutes,
        )
        with sdk_step("create sandbox"):
            sandbox = await self._daytona.create(params, on_snapshot_create_logs=self._log_build_line)
        return RemoteSandbox(sandbox, self.log)

    async def delete(self, sandbox: RemoteSandbox) -> None:
        with sdk_step(f"delete sandbox {sandbox.id}"):
            await self._daytona.delete(sandbox.raw)

    async def create_snapshot(self, name: str, image, resources: SandboxResources) -> None:
        """Build a named snapshot from an image, streaming build logs."""
        params = CreateSnapshotParams(name=name, image=image, resources=resources.to_sdk())
        with sdk_step(f"create snapshot {name}"):
            await self._daytona.snapshot.create(params, on_logs=self._log_build_line)

    def _log_build_line(self, line: str) -> None:
        self.log.info("[build] %s", line.rstrip())
