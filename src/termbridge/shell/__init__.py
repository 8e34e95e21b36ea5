"""Shell process wrapper for termbridge.

Public API:
    ShellProcess -- One supervised interactive shell
    ShellError -- Raised on misuse of a ShellProcess
    default_shell -- Platform default shell binary
"""

from termbridge.shell.process import (
    ShellError,
    ShellProcess,
    default_shell,
    kill_process_group,
    platform_name,
)

__all__ = [
    "ShellError",
    "ShellProcess",
    "default_shell",
    "kill_process_group",
    "platform_name",
]
