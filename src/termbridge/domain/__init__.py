"""Domain models for termbridge.

This package contains the core data structures and enumerations used
throughout the system. All models use Pydantic v2 for validation and
serialization.
"""

from termbridge.domain.models import (
    ClientMessage,
    CommandResult,
    CreateDirectory,
    CreateFile,
    DeletePath,
    ExecutionResult,
    ListDirectory,
    OutputStream,
    SandboxCommand,
    SessionState,
    ShellErrored,
    ShellEvent,
    ShellExited,
    ShellOutput,
    TerminalDimensions,
    TerminalInit,
    TerminalInput,
    TerminalOutput,
    TerminalResize,
)

__all__ = [
    "ClientMessage",
    "CommandResult",
    "CreateDirectory",
    "CreateFile",
    "DeletePath",
    "ExecutionResult",
    "ListDirectory",
    "OutputStream",
    "SandboxCommand",
    "SessionState",
    "ShellErrored",
    "ShellEvent",
    "ShellExited",
    "ShellOutput",
    "TerminalDimensions",
    "TerminalInit",
    "TerminalInput",
    "TerminalOutput",
    "TerminalResize",
]
