"""Tests for the supervised shell process (real /bin/bash)."""

from __future__ import annotations

import asyncio
import sys

import pytest

from termbridge.domain.models import OutputStream, ShellErrored, ShellExited, ShellOutput
from termbridge.shell.process import ShellError, ShellProcess, default_shell
from tests.fakes import requires_bash


async def _collect(shell: ShellProcess, timeout: float = 10.0) -> list:
    async def drain() -> list:
        return [event async for event in shell.events()]

    return await asyncio.wait_for(drain(), timeout)


class TestDefaults:
    def test_default_shell_for_platform(self) -> None:
        expected = "cmd.exe" if sys.platform == "win32" else "/bin/bash"
        assert default_shell() == expected

    def test_not_alive_before_start(self) -> None:
        shell = ShellProcess()
        assert not shell.is_alive
        assert shell.pid is None
        assert shell.shell_command == default_shell()


class TestSpawnFailure:
    @pytest.mark.asyncio
    async def test_missing_binary_is_an_event(self) -> None:
        shell = ShellProcess(shell_command="/nonexistent/shell-binary")
        await shell.start()
        events = await _collect(shell)
        assert len(events) == 1
        assert isinstance(events[0], ShellErrored)
        assert not shell.is_alive
        assert await shell.write("ls\n") is False

    @pytest.mark.asyncio
    async def test_kill_after_failed_spawn(self) -> None:
        shell = ShellProcess(shell_command="/nonexistent/shell-binary")
        await shell.start()
        shell.kill()
        await shell.stop()

    @pytest.mark.asyncio
    async def test_start_twice_raises(self) -> None:
        shell = ShellProcess(shell_command="/nonexistent/shell-binary")
        await shell.start()
        with pytest.raises(ShellError, match="already started"):
            await shell.start()


@requires_bash
class TestLiveShell:
    @pytest.mark.asyncio
    async def test_output_then_exit_code(self, tmp_path) -> None:
        shell = ShellProcess(shell_command="/bin/bash", cwd=str(tmp_path))
        await shell.start()
        assert shell.is_alive
        assert shell.pid is not None
        assert await shell.write("pwd\n")
        assert await shell.write("echo problem 1>&2\n")
        assert await shell.write("exit 3\n")

        events = await _collect(shell)
        assert isinstance(events[-1], ShellExited)
        assert events[-1].code == 3
        stdout = "".join(
            e.data for e in events if isinstance(e, ShellOutput) and e.stream is OutputStream.STDOUT
        )
        stderr = "".join(
            e.data for e in events if isinstance(e, ShellOutput) and e.stream is OutputStream.STDERR
        )
        assert str(tmp_path) in stdout
        assert "problem" in stderr
        assert not shell.is_alive

    @pytest.mark.asyncio
    async def test_write_after_exit_needs_respawn(self) -> None:
        shell = ShellProcess(shell_command="/bin/bash")
        await shell.start()
        await shell.write("exit\n")
        await _collect(shell)
        assert await shell.write("echo too late\n") is False

    @pytest.mark.asyncio
    async def test_kill_is_idempotent(self) -> None:
        shell = ShellProcess(shell_command="/bin/bash")
        await shell.start()
        shell.kill()
        shell.kill()
        events = await _collect(shell)
        assert isinstance(events[-1], ShellExited)
        assert events[-1].code is not None and events[-1].code < 0
        shell.kill()
        await shell.stop()

    @pytest.mark.asyncio
    async def test_write_to_busy_shell_does_not_block(self) -> None:
        shell = ShellProcess(shell_command="/bin/bash")
        await shell.start()
        assert await shell.write("sleep 20\n")
        # Far more than a pipe buffer while nothing reads stdin
        assert await asyncio.wait_for(shell.write("x" * 400_000), 1)
        await asyncio.wait_for(shell.stop(), 5)
        assert not shell.is_alive

    @pytest.mark.asyncio
    async def test_environment_and_size(self) -> None:
        shell = ShellProcess(
            shell_command="/bin/bash", env={"PATH": "/usr/bin:/bin", "GREETING": "hola"},
            cols=100, rows=30,
        )
        await shell.start()
        await shell.write('echo "$GREETING $COLUMNS $LINES"\nexit\n')
        events = await _collect(shell)
        text = "".join(e.data for e in events if isinstance(e, ShellOutput))
        assert "hola 100 30" in text


class TestResize:
    def test_resize_records_size(self) -> None:
        shell = ShellProcess()
        shell.resize(120, 40)
        assert (shell.cols, shell.rows) == (120, 40)

    def test_invalid_resize_ignored(self) -> None:
        shell = ShellProcess(cols=80, rows=24)
        shell.resize(0, -5)
        assert (shell.cols, shell.rows) == (80, 24)
