"""In-memory stand-ins used across the termbridge tests.

Fakes for the two things a terminal session talks to (its client
connection and its shell process) so session and bridge logic can be
tested without spawning real processes.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Any, AsyncIterator

import pytest

from termbridge.domain.models import (
    OutputStream,
    ShellErrored,
    ShellEvent,
    ShellExited,
    ShellOutput,
)
from termbridge.terminal.session import Connection, ConnectionClosed

BASH_AVAILABLE = shutil.which("bash") is not None and Path("/bin/bash").exists()

requires_bash = pytest.mark.skipif(not BASH_AVAILABLE, reason="/bin/bash not available")


async def settle(rounds: int = 10) -> None:
    """Let pending tasks (output pumps) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------


class FakeConnection(Connection):
    """Records every frame a session sends."""

    def __init__(self) -> None:
        self.open = True
        self.fail_sends = False
        self.frames: list[dict[str, Any]] = []

    @property
    def is_open(self) -> bool:
        return self.open

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.fail_sends:
            raise ConnectionClosed("peer went away")
        self.frames.append(data)

    @property
    def contents(self) -> list[str]:
        return [frame["content"] for frame in self.frames]


# ---------------------------------------------------------------------------
# Shells
# ---------------------------------------------------------------------------


class FakeShellProcess:
    """Scriptable stand-in for ShellProcess.

    ``echo=True`` makes every write come back as output, like a terminal
    with local echo, which gives tests a round trip to wait on.
    """

    def __init__(
        self,
        shell_command: str | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        cols: int = 80,
        rows: int = 24,
        fail_spawn: str | None = None,
        echo: bool = False,
    ) -> None:
        self.shell_command = shell_command
        self.cwd = cwd
        self.env = env
        self.cols = cols
        self.rows = rows
        self.fail_spawn = fail_spawn
        self.echo = echo
        self.written: list[str] = []
        self.resizes: list[tuple[int, int]] = []
        self.killed = False
        self._alive = False
        self._events: asyncio.Queue[ShellEvent | None] = asyncio.Queue()

    @property
    def is_alive(self) -> bool:
        return self._alive

    async def start(self) -> None:
        if self.fail_spawn:
            self._events.put_nowait(ShellErrored(message=self.fail_spawn))
            self._events.put_nowait(None)
            return
        self._alive = True

    async def write(self, data: str) -> bool:
        if not self._alive:
            return False
        self.written.append(data)
        if self.echo:
            self.emit(data)
        return True

    def resize(self, cols: int, rows: int) -> None:
        self.resizes.append((cols, rows))

    def kill(self) -> None:
        if self._alive:
            self.killed = True
            self.exit(-9)

    async def stop(self) -> None:
        self.kill()

    def emit(self, text: str, stream: OutputStream = OutputStream.STDOUT) -> None:
        self._events.put_nowait(ShellOutput(stream=stream, data=text))

    def exit(self, code: int = 0) -> None:
        self._alive = False
        self._events.put_nowait(ShellExited(code=code))
        self._events.put_nowait(None)

    async def events(self) -> AsyncIterator[ShellEvent]:
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event


class ShellRecorder:
    """Shell factory that remembers every shell it created."""

    def __init__(self, echo: bool = False) -> None:
        self.echo = echo
        self.fail_spawn: str | None = None
        self.shells: list[FakeShellProcess] = []

    def __call__(self, **kwargs: Any) -> FakeShellProcess:
        shell = FakeShellProcess(fail_spawn=self.fail_spawn, echo=self.echo, **kwargs)
        self.shells.append(shell)
        return shell

    @property
    def live(self) -> list[FakeShellProcess]:
        return [shell for shell in self.shells if shell.is_alive]
