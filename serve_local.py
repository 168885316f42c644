#!/usr/bin/env python3
"""Run `opencode serve` locally against the config written by load_context.py."""

import sys

from config.log import configure_logging
from sandbox.local import serve_local_main
from sandbox.tasks import run_with_signals

if __name__ == "__main__":
    configure_logging()
    sys.exit(run_with_signals(serve_local_main()))
