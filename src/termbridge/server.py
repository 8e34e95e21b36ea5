"""FastAPI application for termbridge.

Routes:

    GET  /health                -> {"status": "ok", "active_sessions": N}
    POST /api/execute/command   <- {"command": "ls -la"}
    WS   /terminal              terminal bridge (path configurable)

The Socket.IO command channel (event ``chat-command``) is mounted around
the FastAPI app by :func:`create_asgi_app`.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import socketio
import uvicorn
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from termbridge import __version__
from termbridge.config.settings import Settings
from termbridge.execution.oneshot import run_command
from termbridge.sandbox.channel import CommandChannel
from termbridge.sandbox.commands import SandboxExecutor
from termbridge.terminal.bridge import TerminalBridge

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class CommandRequest(BaseModel):
    command: str | None = Field(default=None, description="Shell command line to run")


class HealthResponse(BaseModel):
    status: str = "ok"
    active_sessions: int = 0


async def parse_command_request(request: Request) -> CommandRequest | None:
    """Read the execute body, or None if it is missing or malformed."""
    try:
        body = await request.json()
    except ValueError:
        return None
    try:
        return CommandRequest.model_validate(body)
    except ValidationError:
        return None


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Settings | None = None,
    bridge: TerminalBridge | None = None,
) -> FastAPI:
    """Create the HTTP + WebSocket application.

    Args:
        settings: Loaded settings; defaults are used if None.
        bridge: Optional pre-configured TerminalBridge (for testing).
    """
    settings = settings or Settings()
    if bridge is None:
        bridge = TerminalBridge(
            shell_command=settings.terminal.shell_command,
            cwd=settings.terminal.working_directory,
            cols=settings.terminal.default_cols,
            rows=settings.terminal.default_rows,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Terminal bridge listening on %s", settings.server.terminal_path)
        yield
        await app.state.bridge.shutdown()

    app = FastAPI(
        title="termbridge",
        description="WebSocket terminal bridge, one-shot command execution and sandboxed file commands",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.bridge = bridge

    @app.get("/health")
    async def health_check() -> HealthResponse:
        return HealthResponse(active_sessions=app.state.bridge.active_sessions)

    @app.post("/api/execute/command")
    async def execute_command(http_request: Request) -> JSONResponse:
        request = await parse_command_request(http_request)
        if request is None or not request.command:
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": "Command not provided"},
            )
        exec_config = app.state.settings.execution
        result = await run_command(
            request.command,
            cwd=exec_config.working_directory,
            timeout=exec_config.timeout,
            shell_command=app.state.settings.terminal.shell_command,
        )
        if result.success:
            content: dict[str, Any] = {
                "success": True,
                "output": result.output,
                "exit_code": result.exit_code,
            }
            return JSONResponse(status_code=200, content=content)
        content = {
            "success": False,
            "error": result.error,
            "output": result.output,
            "exit_code": result.exit_code,
        }
        if result.timed_out:
            content["timed_out"] = True
        return JSONResponse(status_code=500, content=content)

    @app.websocket(settings.server.terminal_path)
    async def terminal_socket(websocket: WebSocket) -> None:
        await app.state.bridge.serve(websocket)

    return app


def create_asgi_app(
    settings: Settings | None = None,
    app: FastAPI | None = None,
    channel: CommandChannel | None = None,
) -> socketio.ASGIApp:
    """Wrap the FastAPI app with the Socket.IO command channel."""
    settings = settings or Settings()
    app = app or create_app(settings)
    if channel is None:
        root = settings.sandbox.project_root or os.getcwd()
        channel = CommandChannel(
            SandboxExecutor(root),
            cors_allowed_origins=settings.server.cors_allowed_origins,
        )
        logger.info("Sandboxed command channel rooted at %s", channel.executor.root)
    app.state.command_channel = channel
    return socketio.ASGIApp(
        channel.sio,
        other_asgi_app=app,
        socketio_path=settings.server.socketio_path,
    )


def main() -> None:
    """Entry point for running the server standalone."""
    settings = Settings()
    uvicorn.run(create_asgi_app(settings), host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
