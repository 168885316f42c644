#!/usr/bin/env python3
"""Build the Daytona snapshot for one documentation repo.

Usage:
    python build_snapshot.py effect
"""

import argparse
import sys

from config.log import configure_logging
from config.repos import repo_names
from sandbox.tasks import run_with_signals
from scripts.snapshots import snapshot_main


def main():
    parser = argparse.ArgumentParser(description="Build a docs snapshot on Daytona")
    parser.add_argument("name", choices=repo_names(), help="Repo to bake into the snapshot")
    args = parser.parse_args()

    configure_logging()
    sys.exit(run_with_signals(snapshot_main(args.name)))


if __name__ == "__main__":
    main()
