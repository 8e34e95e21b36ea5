"""Terminal bridge: WebSocket endpoint that owns all terminal sessions.

Each accepted WebSocket gets exactly one :class:`TerminalSession`,
registered in a map keyed by session id for as long as the socket is
open. The bridge is the only place sessions are created and destroyed.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from termbridge.shell.process import ShellProcess
from termbridge.terminal.protocol import ProtocolError, UnknownMessageType, decode_message
from termbridge.terminal.session import (
    Connection,
    ConnectionClosed,
    ShellFactory,
    TerminalSession,
)

logger = logging.getLogger(__name__)


class WebSocketConnection(Connection):
    """Adapts a Starlette WebSocket to the session's Connection interface."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    @property
    def remote_address(self) -> str:
        client = self._websocket.client
        if client is None:
            return "unknown"
        return f"{client.host}:{client.port}"

    @property
    def is_open(self) -> bool:
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, data: dict[str, Any]) -> None:
        try:
            await self._websocket.send_json(data)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise ConnectionClosed(str(e) or type(e).__name__) from e


class TerminalBridge:
    """Accepts terminal WebSockets and tracks their sessions."""

    def __init__(
        self,
        shell_command: str | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        cols: int = 80,
        rows: int = 24,
        shell_factory: ShellFactory = ShellProcess,
    ) -> None:
        self._shell_command = shell_command
        self._cwd = cwd
        self._env = env
        self._cols = cols
        self._rows = rows
        self._shell_factory = shell_factory
        self._sessions: dict[str, TerminalSession] = {}

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def get_session(self, session_id: str) -> TerminalSession | None:
        return self._sessions.get(session_id)

    def create_session(self, connection: Connection) -> TerminalSession:
        """Create and register a session for a new connection."""
        session = TerminalSession(
            connection,
            shell_command=self._shell_command,
            cwd=self._cwd,
            env=self._env,
            cols=self._cols,
            rows=self._rows,
            shell_factory=self._shell_factory,
        )
        self._sessions[session.session_id] = session
        return session

    async def release_session(self, session: TerminalSession) -> None:
        """Unregister a session and kill its shell."""
        self._sessions.pop(session.session_id, None)
        await session.close()

    async def serve(self, websocket: WebSocket) -> None:
        """Run one terminal connection until the client disconnects."""
        await websocket.accept()
        connection = WebSocketConnection(websocket)
        session = self.create_session(connection)
        logger.info(
            "New terminal client connected from %s (session %s)",
            connection.remote_address, session.session_id,
        )
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await self.dispatch(session, raw)
        except WebSocketDisconnect:
            pass
        finally:
            await self.release_session(session)
            logger.info("Terminal client disconnected (session %s)", session.session_id)

    async def dispatch(self, session: TerminalSession, raw: str | bytes) -> None:
        """Decode one frame and hand it to the session.

        Bad frames are logged and dropped; the connection stays open.
        """
        try:
            message = decode_message(raw)
        except UnknownMessageType as e:
            logger.warning("Session %s: %s", session.session_id, e)
            return
        except ProtocolError as e:
            logger.warning("Session %s: rejected frame: %s", session.session_id, e)
            return

        try:
            await session.handle(message)
        except Exception:
            logger.exception(
                "Session %s: error handling %s", session.session_id, message.type
            )

    async def shutdown(self) -> None:
        """Close every open session (server shutdown)."""
        for session in list(self._sessions.values()):
            await self.release_session(session)
        logger.info("Terminal bridge stopped")
