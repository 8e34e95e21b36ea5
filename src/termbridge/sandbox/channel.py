"""Socket.IO binding for the sandboxed command channel.

Clients emit ``chat-command`` with a single string payload and receive
either ``command-success`` or ``command-error``, both plain text. A failed
command never closes the connection.
"""

from __future__ import annotations

import logging
from typing import Any

import socketio

from termbridge.sandbox.commands import (
    InvalidCommand,
    SandboxError,
    SandboxExecutor,
    parse_command,
)

logger = logging.getLogger(__name__)

COMMAND_EVENT = "chat-command"
SUCCESS_EVENT = "command-success"
ERROR_EVENT = "command-error"


class CommandChannel:
    """Registers the sandbox command handlers on a Socket.IO server."""

    def __init__(
        self,
        executor: SandboxExecutor,
        sio: socketio.AsyncServer | None = None,
        cors_allowed_origins: list[str] | str = "*",
    ) -> None:
        self._executor = executor
        self._sio = sio or socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=cors_allowed_origins,
        )
        self._sio.on("connect", self.on_connect)
        self._sio.on("disconnect", self.on_disconnect)
        self._sio.on(COMMAND_EVENT, self.handle_command)

    @property
    def sio(self) -> socketio.AsyncServer:
        return self._sio

    @property
    def executor(self) -> SandboxExecutor:
        return self._executor

    async def on_connect(self, sid: str, environ: dict[str, Any]) -> None:
        logger.info(
            "Command channel client %s connected from %s",
            sid, environ.get("REMOTE_ADDR", "unknown"),
        )

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        logger.info("Command channel client %s disconnected", sid)

    async def handle_command(self, sid: str, command: Any) -> None:
        """Parse, run and answer one ``chat-command`` event."""
        try:
            if not isinstance(command, str):
                raise InvalidCommand("Command must be a string")
            parsed = parse_command(command)
            result = await self._executor.run(parsed)
        except SandboxError as e:
            logger.warning("Rejected command from %s (%r): %s", sid, command, e)
            await self._sio.emit(ERROR_EVENT, f"Error: {e}", to=sid)
            return
        except Exception as e:
            logger.exception("Command from %s failed unexpectedly", sid)
            await self._sio.emit(ERROR_EVENT, f"Error: {e}", to=sid)
            return

        await self._sio.emit(SUCCESS_EVENT, result.message, to=sid)
