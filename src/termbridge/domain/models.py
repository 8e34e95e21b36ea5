"""Core domain models for the termbridge system.

These models represent the data flowing through the system: terminal
protocol frames exchanged with the browser, events produced by a
supervised shell process, commands accepted on the sandboxed file
channel, and the outcome of one-shot command executions.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SessionState(str, enum.Enum):
    """Lifecycle state of a terminal session."""

    UNINITIALIZED = "uninitialized"  # Connected, no terminal:init seen yet
    ACTIVE = "active"  # Initialized; may or may not own a live shell
    TERMINATED = "terminated"  # Connection closed, shell killed


class OutputStream(str, enum.Enum):
    """Which pipe a chunk of shell output came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


# ---------------------------------------------------------------------------
# Terminal Protocol Models (discriminated union)
# ---------------------------------------------------------------------------


class TerminalDimensions(BaseModel):
    """Terminal size in character cells."""

    model_config = ConfigDict(frozen=True)

    cols: int = Field(gt=0, description="Number of columns")
    rows: int = Field(gt=0, description="Number of rows")


class TerminalInit(BaseModel):
    """Client request to start (or reuse) the session's shell."""

    model_config = ConfigDict(frozen=True)

    type: Literal["terminal:init"] = "terminal:init"


class TerminalInput(BaseModel):
    """Raw keystrokes/text to forward to the shell's stdin."""

    model_config = ConfigDict(frozen=True)

    type: Literal["terminal:input"] = "terminal:input"
    content: str = Field(default="", description="Text written verbatim to stdin")


class TerminalResize(BaseModel):
    """Client terminal was resized."""

    model_config = ConfigDict(frozen=True)

    type: Literal["terminal:resize"] = "terminal:resize"
    dimensions: TerminalDimensions


class TerminalOutput(BaseModel):
    """Text produced by the shell (server to client only)."""

    model_config = ConfigDict(frozen=True)

    type: Literal["terminal:output"] = "terminal:output"
    content: str = Field(description="Shell output or an inline status line")


# Messages a client may send
ClientMessage = Annotated[
    Union[TerminalInit, TerminalInput, TerminalResize],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Shell Process Events
# ---------------------------------------------------------------------------


class ShellOutput(BaseModel):
    """A chunk read from the shell's stdout or stderr."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["output"] = "output"
    stream: OutputStream
    data: str


class ShellExited(BaseModel):
    """The shell process exited; always the last event of a process."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["exited"] = "exited"
    code: int | None = Field(default=None, description="OS exit code, negative for signals")


class ShellErrored(BaseModel):
    """The shell could not be spawned or failed while running."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["errored"] = "errored"
    message: str


ShellEvent = Annotated[
    Union[ShellOutput, ShellExited, ShellErrored],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Sandbox Command Models
# ---------------------------------------------------------------------------


class CreateFile(BaseModel):
    """``crear-archivo <path>``: create an empty file."""

    model_config = ConfigDict(frozen=True)

    verb: Literal["crear-archivo"] = "crear-archivo"
    path: str


class CreateDirectory(BaseModel):
    """``crear-directorio <path>``: create a directory and its parents."""

    model_config = ConfigDict(frozen=True)

    verb: Literal["crear-directorio"] = "crear-directorio"
    path: str


class DeletePath(BaseModel):
    """``eliminar <path>``: delete a file or a directory tree."""

    model_config = ConfigDict(frozen=True)

    verb: Literal["eliminar"] = "eliminar"
    path: str


class ListDirectory(BaseModel):
    """``listar [path]``: list the immediate entries of a directory."""

    model_config = ConfigDict(frozen=True)

    verb: Literal["listar"] = "listar"
    path: str = "."


SandboxCommand = Annotated[
    Union[CreateFile, CreateDirectory, DeletePath, ListDirectory],
    Field(discriminator="verb"),
]


class CommandResult(BaseModel):
    """Successful outcome of a sandbox command."""

    model_config = ConfigDict(frozen=True)

    verb: str
    path: str = Field(description="The sanitized, root-relative path acted upon")
    entries: list[str] = Field(default_factory=list, description="Directory entries for listar")

    @property
    def message(self) -> str:
        """Human-readable reply line sent back to the client."""
        if self.verb == "crear-archivo":
            return f"File created: {self.path}"
        if self.verb == "crear-directorio":
            return f"Directory created: {self.path}"
        if self.verb == "eliminar":
            return f"Deleted: {self.path}"
        return f"Contents of {self.path}:\n" + "\n".join(self.entries)


# ---------------------------------------------------------------------------
# One-shot Execution Models
# ---------------------------------------------------------------------------


class ExecutionResult(BaseModel):
    """Captured outcome of running a single command to completion."""

    success: bool
    output: str = Field(default="", description="Accumulated stdout")
    error: str = Field(default="", description="Accumulated stderr or a failure message")
    exit_code: int | None = Field(
        default=None, description="OS exit code; None when the shell never started"
    )
    timed_out: bool = False
