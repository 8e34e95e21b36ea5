"""Per-connection terminal session.

A :class:`TerminalSession` pairs one client connection with at most one
live :class:`~termbridge.shell.process.ShellProcess`. It translates
protocol messages into process operations and process events into
``terminal:output`` frames.

Lifecycle::

    uninitialized --terminal:init--> active --close()--> terminated

While active the session may temporarily have no shell (it exited or
failed to spawn). The next ``terminal:input`` then respawns one instead
of reporting an error.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable

from termbridge.domain.models import (
    ClientMessage,
    SessionState,
    ShellErrored,
    ShellExited,
    ShellOutput,
    TerminalInit,
    TerminalInput,
    TerminalResize,
)
from termbridge.shell.process import ShellError, ShellProcess, default_shell, platform_name
from termbridge.terminal.protocol import encode_output

logger = logging.getLogger(__name__)

ShellFactory = Callable[..., ShellProcess]

UNAVAILABLE_NOTICE = "\r\nTerminal unavailable. Reconnecting...\r\n"


class ConnectionClosed(Exception):
    """Raised by a Connection when the peer is no longer reachable."""


class Connection(ABC):
    """Duplex client channel a session writes output frames to."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether frames can still be delivered."""
        ...

    @abstractmethod
    async def send_json(self, data: dict[str, Any]) -> None:
        """Send one JSON frame.

        Raises:
            ConnectionClosed: If the peer went away during the send.
        """
        ...


class TerminalSession:
    """State machine binding one connection to its shell process."""

    def __init__(
        self,
        connection: Connection,
        shell_command: str | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        cols: int = 80,
        rows: int = 24,
        shell_factory: ShellFactory = ShellProcess,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._connection = connection
        self._shell_command = shell_command or default_shell()
        self._cwd = cwd
        self._env = env
        self._cols = cols
        self._rows = rows
        self._shell_factory = shell_factory
        self._state = SessionState.UNINITIALIZED
        self._shell: ShellProcess | None = None
        self._pumps: set[asyncio.Task[None]] = set()
        # Readers, exit and error handlers all write to one socket
        self._send_lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def shell(self) -> ShellProcess | None:
        return self._shell

    @property
    def shell_command(self) -> str:
        return self._shell_command

    @property
    def has_live_shell(self) -> bool:
        return self._shell is not None and self._shell.is_alive

    async def handle(self, message: ClientMessage) -> None:
        """Dispatch one decoded client message."""
        if isinstance(message, TerminalInit):
            await self.on_init()
        elif isinstance(message, TerminalInput):
            await self.on_input(message.content)
        elif isinstance(message, TerminalResize):
            self.on_resize(message.dimensions.cols, message.dimensions.rows)

    async def on_init(self) -> None:
        """Start a shell unless one is already running."""
        if self._state is SessionState.TERMINATED:
            return
        self._state = SessionState.ACTIVE
        if self.has_live_shell:
            logger.debug("Session %s: redundant terminal:init ignored", self.session_id)
            return
        logger.info("Session %s: initializing terminal", self.session_id)
        await self._spawn()

    async def on_input(self, text: str) -> None:
        """Write input to the shell, respawning it if it is gone.

        The input that finds the shell unavailable is dropped; it only
        triggers the respawn.
        """
        if self._state is SessionState.TERMINATED:
            return
        if self._shell is not None and await self._shell.write(text):
            return
        logger.info("Session %s: shell unavailable, respawning", self.session_id)
        await self._send(UNAVAILABLE_NOTICE)
        self._state = SessionState.ACTIVE
        await self._spawn()

    def on_resize(self, cols: int, rows: int) -> None:
        """Forward a resize to the shell; remembered for later spawns."""
        if self._state is SessionState.TERMINATED:
            return
        self._cols = cols
        self._rows = rows
        if self._shell is not None:
            self._shell.resize(cols, rows)

    async def close(self) -> None:
        """Tear the session down, killing the shell if there is one."""
        if self._state is SessionState.TERMINATED:
            return
        self._state = SessionState.TERMINATED
        shell, self._shell = self._shell, None
        if shell is not None:
            try:
                await shell.stop()
            except (OSError, ShellError) as e:
                logger.debug("Session %s: ignoring kill error: %s", self.session_id, e)
        pumps = list(self._pumps)
        for task in pumps:
            task.cancel()
        await asyncio.gather(*pumps, return_exceptions=True)
        logger.info("Session %s closed", self.session_id)

    async def _spawn(self) -> None:
        previous = self._shell
        if previous is not None:
            previous.kill()

        shell = self._shell_factory(
            shell_command=self._shell_command,
            cwd=self._cwd,
            env=self._env,
            cols=self._cols,
            rows=self._rows,
        )
        self._shell = shell
        await shell.start()
        if shell.is_alive:
            await self._send(f"Terminal started ({platform_name()})\r\n")

        task = asyncio.create_task(self._pump_events(shell))
        self._pumps.add(task)
        task.add_done_callback(self._pumps.discard)

    async def _pump_events(self, shell: ShellProcess) -> None:
        """Relay one shell's events to the client until it finishes."""
        try:
            async for event in shell.events():
                if isinstance(event, ShellOutput):
                    await self._send(event.data)
                elif isinstance(event, ShellExited):
                    logger.info(
                        "Session %s: shell exited with code %s", self.session_id, event.code
                    )
                    self._release(shell)
                    await self._send(f"\r\nProcess exited (code {event.code})\r\n")
                elif isinstance(event, ShellErrored):
                    logger.warning(
                        "Session %s: shell error: %s", self.session_id, event.message
                    )
                    self._release(shell)
                    await self._send(f"\r\nError: {event.message}\r\n")
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Session %s: output pump failed", self.session_id)
            self._release(shell)

    def _release(self, shell: ShellProcess) -> None:
        # A respawn may already have replaced this shell
        if self._shell is shell:
            self._shell = None

    async def _send(self, content: str) -> None:
        """Send a terminal:output frame, dropping it if the client is gone."""
        async with self._send_lock:
            if not self._connection.is_open:
                logger.debug("Session %s: connection closed, dropping output", self.session_id)
                return
            try:
                await self._connection.send_json(encode_output(content))
            except ConnectionClosed as e:
                logger.debug("Session %s: send failed, dropping output: %s", self.session_id, e)
