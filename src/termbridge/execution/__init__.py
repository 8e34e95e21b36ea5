"""One-shot command execution for termbridge."""

from termbridge.execution.oneshot import run_command, shell_invocation

__all__ = ["run_command", "shell_invocation"]
