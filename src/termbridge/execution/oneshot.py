"""One-shot command execution.

Runs a single command line through the platform shell (``-c`` on POSIX,
``/c`` for cmd.exe), waits for it to finish and returns everything it
printed. Commands are bounded by a timeout after which the whole process
group is killed; output produced before the kill is kept.
"""

from __future__ import annotations

import asyncio
import logging

from termbridge.domain.models import ExecutionResult
from termbridge.shell.process import IS_WINDOWS, default_shell, kill_process_group

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


def shell_invocation(command_line: str, shell_command: str | None = None) -> list[str]:
    """Build the argv that runs ``command_line`` through a shell."""
    shell = shell_command or default_shell()
    flag = "/c" if shell.lower().endswith("cmd.exe") else "-c"
    return [shell, flag, command_line]


def _normalize(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").replace("\r\n", "\n")


async def _collect(stream: asyncio.StreamReader | None, sink: list[bytes]) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(4096)
        if not chunk:
            return
        sink.append(chunk)


async def run_command(
    command_line: str,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
    shell_command: str | None = None,
) -> ExecutionResult:
    """Run one command to completion and capture its output.

    Args:
        command_line: The command, passed to the shell as a single argument.
        cwd: Working directory; None means the server's cwd.
        env: Environment; None inherits the server's.
        timeout: Seconds before the command is killed; None waits forever.
        shell_command: Override the platform default shell.

    Returns:
        An ExecutionResult. Non-zero exits, spawn failures and timeouts are
        reported in the result rather than raised.
    """
    argv = shell_invocation(command_line, shell_command)
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=env,
            start_new_session=not IS_WINDOWS,
        )
    except (OSError, ValueError) as e:
        logger.warning("Failed to spawn %s: %s", argv[0], e)
        return ExecutionResult(success=False, error=str(e))

    logger.info("Running one-shot command (pid=%d): %s", process.pid, command_line[:200])
    stdout: list[bytes] = []
    stderr: list[bytes] = []
    timed_out = False
    try:
        await asyncio.wait_for(
            asyncio.gather(
                _collect(process.stdout, stdout),
                _collect(process.stderr, stderr),
                process.wait(),
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        timed_out = True
        logger.warning("Command timed out after %ss, killing pid=%d", timeout, process.pid)
        kill_process_group(process)
        await process.wait()
    except asyncio.CancelledError:
        kill_process_group(process)
        raise

    code = process.returncode
    output = _normalize(b"".join(stdout))
    error = _normalize(b"".join(stderr))

    if timed_out:
        # A shell that exited 0 while its children held the pipes did not finish
        return ExecutionResult(
            success=False,
            output=output,
            error=error or f"Command timed out after {timeout:g}s",
            exit_code=None if code == 0 else code,
            timed_out=True,
        )
    if code == 0:
        return ExecutionResult(success=True, output=output, error=error, exit_code=0)

    logger.info("Command exited with code %s", code)
    return ExecutionResult(
        success=False,
        output=output,
        error=error or f"Command execution failed with code {code}",
        exit_code=code,
    )
