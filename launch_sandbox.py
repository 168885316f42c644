#!/usr/bin/env python3
"""Launch an OpenCode docs sandbox on Daytona.

Usage:
    python launch_sandbox.py              # workspace: effect, svelte, daytona
    python launch_sandbox.py svelte       # from the svelte-docs-snapshot
    RUN_IN_BACKGROUND=true python launch_sandbox.py effect
"""

import argparse
import sys

from config.log import configure_logging
from sandbox.opencode import WORKSPACE, launch_main, variant_names
from sandbox.tasks import run_with_signals


def main():
    parser = argparse.ArgumentParser(description="Launch an OpenCode docs sandbox")
    parser.add_argument(
        "name",
        nargs="?",
        default=WORKSPACE,
        choices=variant_names(),
        help=f"Repo snapshot or '{WORKSPACE}' (default: {WORKSPACE})",
    )
    args = parser.parse_args()

    configure_logging()
    sys.exit(run_with_signals(launch_main(args.name)))


if __name__ == "__main__":
    main()
