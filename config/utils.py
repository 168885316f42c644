"""Central configuration for docs sandboxes.

Reads configuration from environment variables, with .env file support.

Environment variables:
- DAYTONA_API_KEY: Daytona API key (required for sandbox variants)
- DAYTONA_TARGET: Daytona region (optional, default: us)
- OPENCODE_API_KEY: Passed through to the sandbox (optional, default: empty)
- RUN_IN_BACKGROUND: exactly "true" leaves the sandbox running on exit (optional)
- VOLUME_ROOT: Base directory for the local variants (optional, default: ./dev-vol)
- EXIT_POLICY: "strict" or "lenient" exit codes on failure (optional)
- SANDBOX_SERVER_URL: Sandbox HTTP server used by the client (optional)
"""

import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

# Load .env file from project root if it exists
try:
    from dotenv import load_dotenv
    _env_path = Path(__file__).parent.parent / ".env"
    if _env_path.exists():
        load_dotenv(_env_path)
except (PermissionError, OSError):
    pass  # .env not accessible, rely on environment variables

DEFAULT_SERVER_URL = "http://localhost:8080"


class DocsSandboxError(RuntimeError):
    """Base class for failures that abort a run."""


class ConfigError(DocsSandboxError):
    """Required configuration is missing or invalid."""


class ExitPolicy(str, Enum):
    """How an entry point maps an internal failure to a process exit code."""
    STRICT = "strict"
    LENIENT = "lenient"

    def exit_code(self, failed: bool) -> int:
        if failed and self is ExitPolicy.STRICT:
            return 1
        return 0


class Settings(BaseModel):
    """Runtime settings resolved from the environment."""
    daytona_api_key: str | None = None
    daytona_target: str = "us"
    opencode_api_key: str = ""
    run_in_background: bool = False
    volume_root: Path
    exit_policy: ExitPolicy | None = None
    server_url: str = DEFAULT_SERVER_URL

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from an environment mapping (defaults to os.environ)."""
        env = os.environ if environ is None else environ

        volume_root = env.get("VOLUME_ROOT") or str(Path.cwd() / "dev-vol")
        policy = env.get("EXIT_POLICY", "").strip().lower()
        if policy and policy not in {p.value for p in ExitPolicy}:
            raise ConfigError(f"EXIT_POLICY must be 'strict' or 'lenient', got '{policy}'")

        return cls(
            daytona_api_key=env.get("DAYTONA_API_KEY") or None,
            daytona_target=env.get("DAYTONA_TARGET", "us"),
            opencode_api_key=env.get("OPENCODE_API_KEY", ""),
            run_in_background=env.get("RUN_IN_BACKGROUND") == "true",
            volume_root=Path(volume_root),
            exit_policy=ExitPolicy(policy) if policy else None,
            server_url=env.get("SANDBOX_SERVER_URL", DEFAULT_SERVER_URL),
        )

    def require_api_key(self) -> str:
        """Get the Daytona API key.

        Returns:
            str: The API key

        Raises:
            ConfigError: If DAYTONA_API_KEY is not set
        """
        if not self.daytona_api_key:
            raise ConfigError(
                "DAYTONA_API_KEY is not set.\n"
                "Either:\n"
                "  1. Add DAYTONA_API_KEY to .env in the project root, or\n"
                "  2. Export DAYTONA_API_KEY as an environment variable"
            )
        return self.daytona_api_key

    def resolve_exit_policy(self, default: ExitPolicy) -> ExitPolicy:
        """Explicit EXIT_POLICY wins over the entry point's default."""
        return self.exit_policy or default


def get_settings() -> Settings:
    """Settings for the current process environment."""
    return Settings.from_env()
