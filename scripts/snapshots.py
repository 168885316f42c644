"""Build the per-repo Daytona snapshots the sandbox variants boot from.

Each snapshot is the OpenCode base image plus a shallow clone of one repo
at /context/repos/<name>, published as SNAPSHOT_NAMES[name].
"""

import logging

from config.repos import SNAPSHOT_NAMES, get_repo
from config.utils import DocsSandboxError, ExitPolicy, Settings, get_settings
from sandbox.daytona import DaytonaClient
from sandbox.image import SNAPSHOT_RESOURCES, build_snapshot_image

logger = logging.getLogger(__name__)


async def build_snapshot(name: str, client: DaytonaClient) -> str:
    """Build and publish the snapshot for one registry repo.

    Returns:
        The snapshot name

    Raises:
        ConfigError: If name is not a registry repo
        SandboxError: If the snapshot build fails
    """
    repo = get_repo(name)
    snapshot = SNAPSHOT_NAMES[name]
    logger.info("Building snapshot %s for %s...", snapshot, repo.label)
    await client.create_snapshot(snapshot, build_snapshot_image(repo), SNAPSHOT_RESOURCES)
    logger.info("Snapshot %s created", snapshot)
    return snapshot


async def snapshot_main(name: str, settings: Settings | None = None) -> int:
    """Entry point for one snapshot build; strict exit codes by default."""
    settings = settings or get_settings()
    policy = settings.resolve_exit_policy(ExitPolicy.STRICT)

    try:
        async with DaytonaClient.from_settings(settings) as client:
            await build_snapshot(name, client)
    except DocsSandboxError as e:
        cause = f" ({e.__cause__})" if e.__cause__ else ""
        logger.error("Failed to create snapshot: %s%s", e, cause)
        return policy.exit_code(failed=True)

    return 0
