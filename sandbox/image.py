"""Daytona image building for OpenCode docs sandboxes.

Functions for constructing images with bun, OpenCode and (for snapshots)
one documentation repo baked in.
"""

import shlex

from daytona import Image

from config.repos import RepoDescriptor
from sandbox.daytona import SandboxResources
from sandbox.repos import clone_command

BASE_IMAGE = "debian:stable-slim"
SANDBOX_VOLUME_ROOT = "/context"
SANDBOX_REPOS_DIR = f"{SANDBOX_VOLUME_ROOT}/repos"

# Snapshots only need to hold one repo; image-built sandboxes sync several
SNAPSHOT_RESOURCES = SandboxResources(cpu=3, memory=4, disk=3)
WORKSPACE_RESOURCES = SandboxResources(cpu=2, memory=3, disk=4)


def get_opencode_image() -> Image:
    """Create an image with git, bun and OpenCode installed."""
    return (
        Image.base(BASE_IMAGE)
        .run_commands(
            "apt-get update",
            "apt-get install -y git curl unzip && rm -rf /var/lib/apt/lists/*",
            "curl -fsSL https://bun.com/install | bash",
        )
        .env({
            "BUN_INSTALL": "/root/.bun",
            "PATH": "/root/.bun/bin:$PATH",
        })
        .run_commands("bun add -g opencode-ai@latest")
    )


def add_repo(image: Image, repo: RepoDescriptor, repos_dir: str = SANDBOX_REPOS_DIR) -> Image:
    """Bake a shallow clone of the repo into the image at repos_dir/<name>."""
    clone = shlex.join(clone_command(repo, f"{repos_dir}/{repo.name}"))
    return image.run_commands(f"mkdir -p {repos_dir} && {clone}")


def build_snapshot_image(repo: RepoDescriptor) -> Image:
    """Combines get_opencode_image + add_repo into one call."""
    return add_repo(get_opencode_image(), repo)
