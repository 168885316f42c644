#!/usr/bin/env python3
"""HTTP server that creates docs sandboxes on request (see api/server.py)."""

from api.server import app
from config.log import configure_logging

if __name__ == "__main__":
    import uvicorn

    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8080, log_config=None)
