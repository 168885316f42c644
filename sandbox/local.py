"""Local variants: mirror context repos onto disk and serve OpenCode from them.

load_context writes the config bundle under VOLUME_ROOT and syncs
LOCAL_REPOS into VOLUME_ROOT/context-repos. serve_local runs
`opencode serve` against that config on this machine.
"""

import asyncio
import logging
import os
from pathlib import Path

from config.repos import LOCAL_REPOS, get_repos
from config.utils import DocsSandboxError, ExitPolicy, Settings, get_settings
from sandbox.prompts import CONFIG_FILENAME, render_bundle, write_bundle
from sandbox.repos import LocalGitRunner, SyncResult, succeeded, sync_repos

logger = logging.getLogger(__name__)

CONTEXT_REPOS_DIRNAME = "context-repos"
LOCAL_SERVE_COMMAND = ("opencode", "serve", "--port=8080")


class LocalServeError(DocsSandboxError):
    """The local OpenCode server could not be started."""


async def load_context(settings: Settings, log: logging.Logger | None = None) -> list[SyncResult]:
    """Write config + prompts into the volume root and sync the local repos.

    Returns:
        One SyncResult per repo in LOCAL_REPOS
    """
    log = log or logger
    volume_root = Path(settings.volume_root)
    repos = get_repos(LOCAL_REPOS)

    bundle = render_bundle(
        repos,
        volume_root,
        repos_dirname=CONTEXT_REPOS_DIRNAME,
        docs_bash="ask",
        svelte_notes=False,
    )
    for path in write_bundle(bundle):
        log.info("Wrote %s", path)

    results = await sync_repos(repos, volume_root / CONTEXT_REPOS_DIRNAME, runner=LocalGitRunner(log), log=log)
    log.info("Loaded %d context items", len(succeeded(results)))
    return results


async def serve_local(settings: Settings, log: logging.Logger | None = None) -> int:
    """Run `opencode serve` with the volume's config until it exits or is cancelled.

    Returns:
        The server's exit code

    Raises:
        LocalServeError: If the opencode binary cannot be started
    """
    log = log or logger
    config_path = Path(settings.volume_root) / CONFIG_FILENAME
    if not config_path.exists():
        log.warning("%s does not exist yet; run load_context.py first", config_path)

    env = {**os.environ, "OPENCODE_CONFIG": str(config_path)}
    try:
        proc = await asyncio.create_subprocess_exec(
            *LOCAL_SERVE_COMMAND,
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise LocalServeError(f"failed to start {' '.join(LOCAL_SERVE_COMMAND)}") from e

    log.info("OpenCode server started (pid %s)", proc.pid)
    try:
        async for raw in proc.stdout:
            log.info("[opencode] %s", raw.decode(errors="replace").rstrip())
        return await proc.wait()
    finally:
        if proc.returncode is None:
            log.info("Stopping OpenCode server...")
            proc.terminate()
            try:
                await asyncio.wait_for(proc.wait(), timeout=5)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()


# ## Entry points

async def load_context_main(settings: Settings | None = None) -> int:
    settings = settings or get_settings()
    policy = settings.resolve_exit_policy(ExitPolicy.LENIENT)
    try:
        results = await load_context(settings)
    except (DocsSandboxError, OSError) as e:
        logger.error("Failed to load context: %s", e)
        return policy.exit_code(failed=True)
    return policy.exit_code(failed=len(succeeded(results)) < len(results))


async def serve_local_main(settings: Settings | None = None) -> int:
    settings = settings or get_settings()
    policy = settings.resolve_exit_policy(ExitPolicy.LENIENT)
    try:
        exit_code = await serve_local(settings)
    except DocsSandboxError as e:
        logger.error("Failed to serve: %s", e)
        return policy.exit_code(failed=True)
    if exit_code != 0:
        logger.error("OpenCode server exited with code %s", exit_code)
    return policy.exit_code(failed=exit_code != 0)
