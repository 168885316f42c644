# # Run OpenCode in a Daytona Sandbox with Documentation Repos

# This module spins up an [OpenCode](https://opencode.ai/docs/) docs agent
# in a Daytona sandbox with one or more reference repositories on disk.

# The agent has access to the repos under `/context/repos` and can:
# - Answer questions about a library by searching its source
# - Compare APIs across different projects

# ## Usage
#
# ```bash
# # Sandbox from a prebuilt snapshot (see scripts/snapshots.py)
# python launch_sandbox.py svelte
#
# # Image-built sandbox that clones effect, svelte and daytona on startup
# python launch_sandbox.py workspace
#
# # Leave it running after this process exits
# RUN_IN_BACKGROUND=true python launch_sandbox.py effect
# ```

import asyncio
import logging
import uuid
from dataclasses import dataclass

from pydantic import BaseModel

from config.repos import SNAPSHOT_NAMES, WORKSPACE_REPOS, RepoDescriptor, get_repo, get_repos, repo_names
from config.utils import DocsSandboxError, ExitPolicy, Settings, get_settings
from sandbox.daytona import DaytonaClient, RemoteSandbox, SandboxError, SandboxResources, ssh_command
from sandbox.image import SANDBOX_REPOS_DIR, SANDBOX_VOLUME_ROOT, WORKSPACE_RESOURCES, get_opencode_image
from sandbox.prompts import ConfigBundle, render_bundle
from sandbox.repos import SandboxGitRunner, SyncResult, sync_repos
from sandbox.tasks import BackgroundTask

logger = logging.getLogger(__name__)

# ## Constants

OPENCODE_PORT = 8080
SERVE_COMMAND = f"opencode serve --port={OPENCODE_PORT} --hostname=0.0.0.0"
DEFAULT_MODEL = "opencode/big-pickle"
WORKSPACE = "workspace"
UPLOAD_CONCURRENCY = 3
SERVER_POLL_SECONDS = 5.0

# Appended to /root/.bashrc so an SSH login drops straight into the TUI
BASHRC_ADDON = f"""
    echo "STARTING..."
    sleep 2
    opencode attach http://localhost:{OPENCODE_PORT}
  """


# ## Variants

class SandboxVariant(BaseModel):
    """What to provision: repo set, image source, sizing and agent settings."""
    name: str
    repos: list[RepoDescriptor]
    snapshot: str | None = None
    resources: SandboxResources | None = None
    auto_stop_minutes: int = 0
    model: str | None = DEFAULT_MODEL
    docs_bash: str = "allow"
    sync_repos_in_sandbox: bool = False
    ssh_expires_minutes: int = 60
    startup_delay: float = 0.0


def variant_names() -> list[str]:
    return repo_names() + [WORKSPACE]


def variant_for(
    name: str,
    auto_stop_minutes: int = 600,
    startup_delay: float = 0.0,
    ssh_expires_minutes: int = 60,
) -> SandboxVariant:
    """Resolve a variant by name.

    Registry names map to a sandbox created from that repo's snapshot;
    "workspace" builds from the base image and clones WORKSPACE_REPOS on start.

    Raises:
        ConfigError: If the name is neither a registry repo nor "workspace"
    """
    if name == WORKSPACE:
        return SandboxVariant(
            name=WORKSPACE,
            repos=get_repos(WORKSPACE_REPOS),
            resources=WORKSPACE_RESOURCES,
            auto_stop_minutes=0,
            model=None,
            docs_bash="ask",
            sync_repos_in_sandbox=True,
            ssh_expires_minutes=ssh_expires_minutes,
            startup_delay=startup_delay,
        )
    return SandboxVariant(
        name=name,
        repos=[get_repo(name)],
        snapshot=SNAPSHOT_NAMES[name],
        auto_stop_minutes=auto_stop_minutes,
        ssh_expires_minutes=ssh_expires_minutes,
        startup_delay=startup_delay,
    )


# ## Results

class AccessInfo(BaseModel):
    sandbox_id: str
    url: str
    ssh: str


class RunResult(BaseModel):
    """What run() observed: access details and how the server ended."""
    info: AccessInfo
    server_exit_code: int | None = None


@dataclass(frozen=True)
class ServerHandle:
    session_id: str
    cmd_id: str | None


# ## The Flow

class SandboxLauncher:
    """Creates, configures and starts an OpenCode docs sandbox.

    launch() provisions and returns connection details, leaving the sandbox
    running. run() does the same and then supervises the server until the
    process is interrupted, deleting the sandbox on the way out unless
    RUN_IN_BACKGROUND is set.
    """

    def __init__(self, client: DaytonaClient, settings: Settings, log: logging.Logger | None = None):
        self.client = client
        self.settings = settings
        self.log = log or logger

    def bundle_for(self, variant: SandboxVariant) -> ConfigBundle:
        return render_bundle(
            variant.repos,
            SANDBOX_VOLUME_ROOT,
            repos_dirname="repos",
            model=variant.model,
            docs_bash=variant.docs_bash,
        )

    def env_vars(self, bundle: ConfigBundle) -> dict[str, str]:
        return {
            "OPENCODE_CONFIG": bundle.config_path,
            "OPENCODE_API_KEY": self.settings.opencode_api_key,
        }

    async def create(self, variant: SandboxVariant) -> RemoteSandbox:
        env_vars = self.env_vars(self.bundle_for(variant))
        if variant.snapshot:
            self.log.info("Creating sandbox from snapshot %s...", variant.snapshot)
            sandbox = await self.client.create_from_snapshot(
                variant.snapshot,
                env_vars=env_vars,
                auto_stop_minutes=variant.auto_stop_minutes,
            )
        else:
            self.log.info("Creating sandbox from image...")
            sandbox = await self.client.create_from_image(
                get_opencode_image(),
                resources=variant.resources or WORKSPACE_RESOURCES,
                env_vars=env_vars,
                auto_stop_minutes=variant.auto_stop_minutes,
            )
        self.log.info("Sandbox %s created", sandbox.id)
        return sandbox

    async def setup_config(self, sandbox: RemoteSandbox, variant: SandboxVariant) -> ConfigBundle:
        """Upload opencode.json and both prompts; any failed upload is fatal."""
        self.log.info("Setting up config...")
        bundle = self.bundle_for(variant)

        try:
            await sandbox.create_folder(bundle.prompts_dir, "755")
        except SandboxError as e:
            raise SandboxError("failed to create prompts folder in volume") from e

        semaphore = asyncio.Semaphore(UPLOAD_CONCURRENCY)

        async def upload(path: str, content: str) -> None:
            async with semaphore:
                await sandbox.upload_file(content.encode(), path)

        try:
            await asyncio.gather(*[upload(path, content) for path, content in bundle.files()])
        except SandboxError as e:
            raise SandboxError("failed to sync config to sandbox volume") from e

        self.log.info("Config written to %s", bundle.config_path)
        self.log.info("Docs agent prompt written to %s", bundle.docs_prompt_path)
        self.log.info("Ask agent prompt written to %s", bundle.ask_prompt_path)
        return bundle

    async def sync_context_repos(self, sandbox: RemoteSandbox, variant: SandboxVariant) -> list[SyncResult]:
        self.log.info("Syncing context repos...")
        results = await sync_repos(
            variant.repos,
            SANDBOX_REPOS_DIR,
            runner=SandboxGitRunner(sandbox, self.log),
            log=self.log,
        )
        synced = sum(1 for r in results if r.ok)
        self.log.info("Synced %d/%d context repos", synced, len(results))
        return results

    async def prepare_ssh_access(self, sandbox: RemoteSandbox) -> None:
        self.log.info("Preparing ssh access...")
        try:
            bashrc = await sandbox.download_file("/root/.bashrc")
        except SandboxError as e:
            raise SandboxError("failed to download .bashrc") from e
        try:
            await sandbox.upload_file(bashrc + BASHRC_ADDON.encode(), "/root/.bashrc")
        except SandboxError as e:
            raise SandboxError("failed to upload new .bashrc") from e

    async def start_server(self, sandbox: RemoteSandbox) -> ServerHandle:
        """Start `opencode serve` in its own session without waiting on it."""
        self.log.info("Starting server...")
        session_id = str(uuid.uuid4())
        try:
            await sandbox.create_session(session_id)
            cmd_id = await sandbox.execute_session_command(session_id, SERVE_COMMAND, run_async=True)
        except SandboxError as e:
            raise SandboxError("failed to start server") from e

        if cmd_id:
            try:
                output = await sandbox.get_session_command_logs(session_id, cmd_id)
                if output.strip():
                    self.log.info("server output: %s", output.strip())
            except SandboxError as e:
                self.log.warning("Could not read server logs: %s", e)

        return ServerHandle(session_id=session_id, cmd_id=cmd_id)

    async def connection_info(self, sandbox: RemoteSandbox, variant: SandboxVariant) -> AccessInfo:
        url = await sandbox.get_preview_url(OPENCODE_PORT)
        self.log.info("Server started")
        token = await sandbox.create_ssh_access(variant.ssh_expires_minutes)
        return AccessInfo(sandbox_id=sandbox.id, url=url, ssh=ssh_command(token))

    async def provision(self, sandbox: RemoteSandbox, variant: SandboxVariant) -> tuple[ServerHandle, AccessInfo]:
        """Everything after creation: config, repos, ssh, server, links."""
        await self.setup_config(sandbox, variant)
        if variant.sync_repos_in_sandbox:
            await self.sync_context_repos(sandbox, variant)
        await self.prepare_ssh_access(sandbox)
        handle = await self.start_server(sandbox)
        if variant.startup_delay:
            await asyncio.sleep(variant.startup_delay)
        info = await self.connection_info(sandbox, variant)
        self.log.info("Sandbox ready")
        return handle, info

    async def launch(self, variant: SandboxVariant) -> AccessInfo:
        """Provision a sandbox and leave it running.

        A sandbox that fails to provision is deleted before the error
        propagates; a successful one is left to its auto-stop interval.
        """
        sandbox = await self.create(variant)
        try:
            _, info = await self.provision(sandbox, variant)
        except Exception:
            await self.shutdown(sandbox, None, None)
            raise
        return info

    async def watch_server(self, sandbox: RemoteSandbox, handle: ServerHandle) -> int | None:
        """Poll the server command until it exits; returns its exit code."""
        if not handle.cmd_id:
            await asyncio.Event().wait()
        while True:
            await asyncio.sleep(SERVER_POLL_SECONDS)
            try:
                exit_code = await sandbox.get_session_command_exit_code(handle.session_id, handle.cmd_id)
            except SandboxError as e:
                self.log.warning("Could not poll server: %s", e)
                continue
            if exit_code is not None:
                self.log.warning("Server exited with code %s", exit_code)
                return exit_code

    async def shutdown(
        self,
        sandbox: RemoteSandbox,
        handle: ServerHandle | None,
        watcher: BackgroundTask | None,
    ) -> None:
        """One best-effort cleanup pass; failures are logged, never raised."""
        self.log.info("Cleaning up daytona resources...")
        if watcher is not None:
            watcher.cancel()
            try:
                await watcher.join()
            except Exception as e:
                self.log.error("failed to interrupt server: %s", e)
        if handle is not None:
            try:
                await sandbox.delete_session(handle.session_id)
            except SandboxError as e:
                self.log.error("failed to stop server: %s", e)
        try:
            await self.client.delete(sandbox)
        except SandboxError as e:
            self.log.error("failed to delete sandbox: %s", e)

    async def run(self, variant: SandboxVariant) -> RunResult:
        """Launch, print access details and supervise until interrupted.

        Returns:
            RunResult whose server_exit_code is set when the remote server
            exited on its own (None in background mode)
        """
        sandbox = await self.create(variant)
        handle = None
        watcher = None
        try:
            handle, info = await self.provision(sandbox, variant)
            print_access_info(info)
            if self.settings.run_in_background:
                return RunResult(info=info)
            watcher = BackgroundTask(self.watch_server(sandbox, handle), name="opencode-server")
            exit_code = await watcher.join()
            return RunResult(info=info, server_exit_code=exit_code)
        finally:
            if not self.settings.run_in_background:
                await self.shutdown(sandbox, handle, watcher)


# ## Print Access Information

def print_access_info(info: AccessInfo) -> None:
    """Print helpful access instructions."""
    print()
    print("=" * 60)
    print("🎉 OpenCode Sandbox Ready!")
    print("=" * 60)
    print()
    print("📋 Sandbox ID:")
    print(f"   {info.sandbox_id}")
    print()
    print("🐚 CONNECT WITH SSH:")
    print(f"   {info.ssh}")
    print()
    print("💻 CONNECT WITH LOCAL TERMINAL:")
    print(f"   opencode attach {info.url}")
    print("=" * 60)


# ## Entry Point

async def launch_main(name: str, settings: Settings | None = None) -> int:
    """Run one sandbox variant; returns the process exit code."""
    settings = settings or get_settings()
    policy = settings.resolve_exit_policy(ExitPolicy.LENIENT)

    try:
        variant = variant_for(name)
        async with DaytonaClient.from_settings(settings) as client:
            result = await SandboxLauncher(client, settings).run(variant)
    except DocsSandboxError as e:
        cause = f" ({e.__cause__})" if e.__cause__ else ""
        logger.error("Failed to run sandbox: %s%s", e, cause)
        return policy.exit_code(failed=True)

    if result.server_exit_code not in (None, 0):
        logger.error("OpenCode server exited with code %s", result.server_exit_code)
        return policy.exit_code(failed=True)

    logger.info("Sandbox ran successfully")
    return 0
