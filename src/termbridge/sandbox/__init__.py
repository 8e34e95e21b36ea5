"""Sandboxed command channel for termbridge.

Executes a closed vocabulary of filesystem commands that can never
reach outside the configured project root.

Public API:
    SandboxExecutor -- Runs parsed commands against a project root
    parse_command -- Parse ``<verb> <path>`` lines
    sanitize_path -- Syntactic path filter
    CommandChannel -- Socket.IO binding (requires python-socketio)
"""

from termbridge.sandbox.commands import (
    CommandNotFound,
    InvalidCommand,
    PathContainmentViolation,
    SandboxError,
    SandboxExecutor,
    parse_command,
    sanitize_path,
)

__all__ = [
    "CommandChannel",
    "CommandNotFound",
    "InvalidCommand",
    "PathContainmentViolation",
    "SandboxError",
    "SandboxExecutor",
    "parse_command",
    "sanitize_path",
]


def __getattr__(name: str) -> type:
    """Lazy import for the Socket.IO binding."""
    if name == "CommandChannel":
        from termbridge.sandbox.channel import CommandChannel
        return CommandChannel
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
