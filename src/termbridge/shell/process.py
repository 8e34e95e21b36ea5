"""Supervised shell process for terminal sessions.

Spawns one interactive platform shell with piped stdin/stdout/stderr and
turns its lifecycle into a single ordered stream of events. Two reader
tasks drain stdout and stderr concurrently while a supervisor task waits
for the process to exit, so consumers never juggle callbacks::

    shell = ShellProcess(cwd="/srv/project")
    await shell.start()
    await shell.write("ls\\n")
    async for event in shell.events():
        ...  # ShellOutput chunks, then exactly one ShellExited
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import signal
import sys
from typing import AsyncIterator

from termbridge.domain.models import (
    OutputStream,
    ShellErrored,
    ShellEvent,
    ShellExited,
    ShellOutput,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"

# Bytes requested per read from a stream
DEFAULT_READ_SIZE = 4096
# Seconds to keep draining pipes after the shell itself has exited
DEFAULT_DRAIN_TIMEOUT = 0.5


def default_shell() -> str:
    """Return the platform's interactive shell binary."""
    return "cmd.exe" if IS_WINDOWS else "/bin/bash"


def platform_name() -> str:
    """Short platform identifier shown in the terminal banner."""
    return sys.platform


def kill_process_group(process: asyncio.subprocess.Process) -> None:
    """SIGKILL a process started with ``start_new_session`` and its children.

    The group is signalled even when the leader has already exited, since
    background children can outlive it. No-op once the whole group is gone.
    """
    if IS_WINDOWS:
        if process.returncode is None:
            process.kill()
            logger.debug("Killed pid=%d", process.pid)
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        return
    except PermissionError:
        if process.returncode is None:
            process.kill()
    logger.debug("Killed process group of pid=%d", process.pid)


class ShellError(Exception):
    """Raised when a shell process is used incorrectly."""


class ShellProcess:
    """One spawned OS shell plus the tasks that supervise it.

    Spawn failures are not raised from :meth:`start`; they are delivered
    as a :class:`ShellErrored` event so that callers handle every failure
    on the same path as normal output.
    """

    def __init__(
        self,
        shell_command: str | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        cols: int = 80,
        rows: int = 24,
        read_size: int = DEFAULT_READ_SIZE,
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
    ) -> None:
        self._shell_command = shell_command or default_shell()
        self._cwd = cwd
        self._env = env
        self._cols = cols
        self._rows = rows
        self._read_size = read_size
        self._drain_timeout = drain_timeout
        self._process: asyncio.subprocess.Process | None = None
        self._events: asyncio.Queue[ShellEvent | None] = asyncio.Queue()
        self._supervisor: asyncio.Task[None] | None = None
        self._stdin_queue: asyncio.Queue[bytes] = asyncio.Queue()
        self._writer: asyncio.Task[None] | None = None
        self._started = False

    @property
    def shell_command(self) -> str:
        return self._shell_command

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def is_alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def rows(self) -> int:
        return self._rows

    async def start(self) -> None:
        """Spawn the shell in interactive mode (no subcommand)."""
        if self._started:
            raise ShellError("Shell process already started")
        self._started = True

        env = dict(os.environ if self._env is None else self._env)
        env["COLUMNS"] = str(self._cols)
        env["LINES"] = str(self._rows)

        try:
            self._process = await asyncio.create_subprocess_exec(
                self._shell_command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
                env=env,
                # Own process group so kill() takes the shell's children too
                start_new_session=not IS_WINDOWS,
            )
        except (OSError, ValueError) as e:
            logger.warning("Failed to spawn shell %s: %s", self._shell_command, e)
            self._events.put_nowait(ShellErrored(message=str(e)))
            self._events.put_nowait(None)
            return

        logger.info(
            "Started shell %s (pid=%d, cwd=%s)",
            self._shell_command, self._process.pid, self._cwd or os.getcwd(),
        )
        self._writer = asyncio.create_task(self._feed_stdin(self._process))
        self._supervisor = asyncio.create_task(self._supervise(self._process))

    async def write(self, data: str) -> bool:
        """Queue text for the shell's stdin.

        Never waits on the pipe: a shell that is busy and not reading keeps
        its input queued while the caller moves on.

        Returns:
            True if the data was queued for the process, False if the shell
            is gone or its stdin is closed (the caller should respawn).
        """
        process = self._process
        if process is None or process.returncode is not None or process.stdin is None:
            return False
        if process.stdin.is_closing() or self._writer is None or self._writer.done():
            return False
        self._stdin_queue.put_nowait(data.encode())
        return True

    def resize(self, cols: int, rows: int) -> None:
        """Record a new terminal size.

        Piped shells have no pty to resize; the size is kept and exported
        as COLUMNS/LINES if this wrapper is ever started. Never raises.
        """
        if cols <= 0 or rows <= 0:
            logger.debug("Ignoring invalid resize %sx%s", cols, rows)
            return
        self._cols = cols
        self._rows = rows
        logger.debug("Resize to %dx%d recorded (no pty backend)", cols, rows)

    def kill(self) -> None:
        """Terminate the shell immediately. Safe to call repeatedly."""
        if self._process is not None:
            kill_process_group(self._process)

    async def stop(self) -> None:
        """Kill the shell and wait for the supervisor to finish."""
        self.kill()
        if self._writer is not None:
            self._writer.cancel()
        if self._supervisor is not None:
            try:
                await self._supervisor
            except asyncio.CancelledError:
                pass

    async def events(self) -> AsyncIterator[ShellEvent]:
        """Yield lifecycle events in order until the process is finished.

        Intended for a single consumer.
        """
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event

    async def _supervise(self, process: asyncio.subprocess.Process) -> None:
        """Drain both pipes, wait for exit, then publish the exit event."""
        readers = [
            asyncio.create_task(self._read_stream(process.stdout, OutputStream.STDOUT)),
            asyncio.create_task(self._read_stream(process.stderr, OutputStream.STDERR)),
        ]
        try:
            code = await process.wait()
            # Background jobs may hold the pipes open after the shell is gone
            _, pending = await asyncio.wait(readers, timeout=self._drain_timeout)
            for task in pending:
                task.cancel()
        except asyncio.CancelledError:
            for task in readers:
                task.cancel()
            raise
        finally:
            if self._writer is not None:
                self._writer.cancel()
            self._events.put_nowait(ShellExited(code=process.returncode))
            self._events.put_nowait(None)
        logger.info("Shell pid=%d exited with code %s", process.pid, code)

    async def _read_stream(
        self, stream: asyncio.StreamReader | None, name: OutputStream
    ) -> None:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            try:
                chunk = await stream.read(self._read_size)
            except OSError as e:
                logger.debug("Error reading shell %s: %s", name.value, e)
                break
            if not chunk:
                break
            text = decoder.decode(chunk)
            if text:
                self._events.put_nowait(ShellOutput(stream=name, data=text))
        tail = decoder.decode(b"", final=True)
        if tail:
            self._events.put_nowait(ShellOutput(stream=name, data=tail))

    async def _feed_stdin(self, process: asyncio.subprocess.Process) -> None:
        stdin = process.stdin
        if stdin is None:
            return
        while True:
            data = await self._stdin_queue.get()
            try:
                stdin.write(data)
                await stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                logger.debug("Shell stdin unavailable (pid=%s): %s", process.pid, e)
                return
