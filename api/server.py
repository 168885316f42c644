"""HTTP front door for creating docs sandboxes on demand.

Routes:
    GET  /                -> available sandbox names and usage
    POST /sandbox/{name}  -> create a sandbox from that repo's snapshot

Sandboxes created here are left running and stop themselves after
SERVER_AUTO_STOP_MINUTES of inactivity; the server never deletes them.
"""

import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.repos import repo_names
from config.utils import DocsSandboxError, get_settings
from sandbox.daytona import DaytonaClient
from sandbox.opencode import SandboxLauncher, variant_for

logger = logging.getLogger(__name__)

SERVER_AUTO_STOP_MINUTES = 120
SERVER_STARTUP_DELAY = 2.0
SERVER_SSH_EXPIRES_MINUTES = 24
USAGE = "POST /sandbox/:name to create a sandbox"

app = FastAPI(title="Docs Sandbox Server")


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    # Unknown routes and wrong methods both read as "Not found"
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content={"error": "Not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(DocsSandboxError)
async def sandbox_error(request: Request, exc: DocsSandboxError):
    logger.error("Failed to create sandbox: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Failed to create sandbox"})


def valid_sandbox_name(name: str) -> str:
    """Path dependency rejecting names outside the registry."""
    if name not in repo_names():
        raise HTTPException(400, f"Invalid sandbox name. Valid: {', '.join(repo_names())}")
    return name


async def get_launcher():
    """One Daytona connection per request, closed after the response."""
    settings = get_settings()
    async with DaytonaClient.from_settings(settings) as client:
        yield SandboxLauncher(client, settings)


@app.get("/")
async def index():
    return {"available": repo_names(), "usage": USAGE}


@app.post("/sandbox/{name}")
async def create_sandbox(
    sandbox_name: str = Depends(valid_sandbox_name),
    launcher: SandboxLauncher = Depends(get_launcher),
):
    """Create a sandbox for one repo and return how to reach it."""
    variant = variant_for(
        sandbox_name,
        auto_stop_minutes=SERVER_AUTO_STOP_MINUTES,
        startup_delay=SERVER_STARTUP_DELAY,
        ssh_expires_minutes=SERVER_SSH_EXPIRES_MINUTES,
    )
    try:
        info = await launcher.launch(variant)
    except DocsSandboxError as e:
        cause = f" ({e.__cause__})" if e.__cause__ else ""
        logger.error("Failed to create sandbox %s: %s%s", sandbox_name, e, cause)
        return JSONResponse(status_code=500, content={"error": "Failed to create sandbox"})

    logger.info("Sandbox %s ready for %s", info.sandbox_id, sandbox_name)
    return {"url": info.url, "ssh": info.ssh}
