"""Registry of documentation repositories mirrored into sandboxes.

Each entry maps a short name to the git URL and branch that gets cloned
into the sandbox (or the local volume) for the docs agent to search.
"""

from pydantic import BaseModel, ConfigDict

from config.utils import ConfigError


class RepoDescriptor(BaseModel):
    """One documentation source to mirror."""
    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    branch: str = "main"
    display_name: str | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.name.capitalize()


CONTEXT_REPOS: dict[str, RepoDescriptor] = {
    "effect": RepoDescriptor(
        name="effect",
        url="https://github.com/Effect-TS/effect",
        display_name="Effect",
    ),
    "opencode": RepoDescriptor(
        name="opencode",
        url="https://github.com/sst/opencode",
        branch="production",
        display_name="OpenCode",
    ),
    "svelte": RepoDescriptor(
        name="svelte",
        url="https://github.com/sveltejs/svelte.dev",
        display_name="Svelte",
    ),
    "daytona": RepoDescriptor(
        name="daytona",
        url="https://github.com/daytonaio/daytona",
        display_name="Daytona",
    ),
    "neverthrow": RepoDescriptor(
        name="neverthrow",
        url="https://github.com/supermacro/neverthrow",
        branch="master",
        display_name="neverthrow",
    ),
}

SNAPSHOT_NAMES: dict[str, str] = {name: f"{name}-docs-snapshot" for name in CONTEXT_REPOS}

# Repo sets used by the multi-repo variants
LOCAL_REPOS = ("effect", "svelte")
WORKSPACE_REPOS = ("effect", "svelte", "daytona")


def repo_names() -> list[str]:
    """Names accepted by the per-repo variants, in registry order."""
    return list(CONTEXT_REPOS)


def get_repo(name: str) -> RepoDescriptor:
    """Look up a repo by short name.

    Raises:
        ConfigError: If the name is not registered (message lists valid names)
    """
    try:
        return CONTEXT_REPOS[name]
    except KeyError:
        raise ConfigError(f"Unknown repo '{name}'. Valid: {', '.join(CONTEXT_REPOS)}") from None


def get_repos(names) -> list[RepoDescriptor]:
    """Resolve a sequence of names, preserving order and duplicates."""
    return [get_repo(name) for name in names]
