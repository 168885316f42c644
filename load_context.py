#!/usr/bin/env python3
"""Write the OpenCode config into VOLUME_ROOT and clone/pull the local context repos."""

import sys

from config.log import configure_logging
from sandbox.local import load_context_main
from sandbox.tasks import run_with_signals

if __name__ == "__main__":
    configure_logging()
    sys.exit(run_with_signals(load_context_main()))
