"""Fixed-vocabulary file commands scoped to a project root.

Commands arrive as single text lines of the form ``<verb> <path>``:

    crear-archivo <path>      create an empty file (parent must exist)
    crear-directorio <path>   create a directory and missing parents
    eliminar <path>           delete a file or a whole directory tree
    listar [path]             list immediate entries (default: root)

Paths go through two independent gates. :func:`sanitize_path` is a purely
syntactic filter; :meth:`SandboxExecutor.resolve` then resolves the result
(following symlinks) and refuses anything that does not land inside the
project root. Both gates fail closed.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
from pathlib import Path

from termbridge.domain.models import (
    CommandResult,
    CreateDirectory,
    CreateFile,
    DeletePath,
    ListDirectory,
    SandboxCommand,
)

logger = logging.getLogger(__name__)

VERBS = ("crear-archivo", "crear-directorio", "eliminar", "listar")

_DISALLOWED_CHARS = re.compile(r"[^a-zA-Z0-9_\-./]")


class SandboxError(Exception):
    """Base class for rejected or failed sandbox commands."""


class CommandNotFound(SandboxError):
    """Raised when the verb is not part of the vocabulary."""

    def __init__(self, verb: str) -> None:
        super().__init__(f"Unrecognized command: {verb}")
        self.verb = verb


class InvalidCommand(SandboxError):
    """Raised when a known verb is used with missing or unusable arguments."""


class PathContainmentViolation(SandboxError):
    """Raised when a path resolves outside the project root."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Path outside the project scope: {path}")
        self.path = path


def sanitize_path(raw: str) -> str:
    """Syntactically clean a client-supplied path.

    Backslashes become forward slashes, characters outside
    ``[A-Za-z0-9_\\-./]`` are dropped, ``../`` is removed until none is
    left and leading slashes are stripped so the result is relative.
    """
    path = raw.replace("\\", "/")
    path = _DISALLOWED_CHARS.sub("", path)
    previous = None
    while previous != path:
        previous = path
        path = path.replace("../", "")
    return path.lstrip("/")


def parse_command(line: str) -> SandboxCommand:
    """Parse ``<verb> <path>`` into a typed command.

    Raises:
        InvalidCommand: If the line is empty or a path is missing.
        CommandNotFound: If the verb is unknown.
    """
    parts = line.strip().split(maxsplit=1)
    if not parts:
        raise InvalidCommand("Empty command")
    verb = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""

    if verb == "listar":
        return ListDirectory(path=arg or ".")
    if verb not in VERBS:
        raise CommandNotFound(verb)
    if not arg:
        raise InvalidCommand(f"{verb} requires a path")
    if verb == "crear-archivo":
        return CreateFile(path=arg)
    if verb == "crear-directorio":
        return CreateDirectory(path=arg)
    return DeletePath(path=arg)


class SandboxExecutor:
    """Runs sandbox commands against one project root."""

    def __init__(self, project_root: str | Path) -> None:
        self._root = Path(project_root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, raw: str) -> tuple[str, Path]:
        """Sanitize ``raw`` and resolve it under the root.

        Returns:
            The sanitized relative path (``.`` for the root itself) and
            the resolved absolute path.

        Raises:
            PathContainmentViolation: If the resolved path escapes the root.
        """
        safe = sanitize_path(raw) or "."
        target = (self._root / safe).resolve()
        if target != self._root and self._root not in target.parents:
            raise PathContainmentViolation(safe)
        return safe, target

    def execute(self, command: SandboxCommand) -> CommandResult:
        """Run one command synchronously.

        Raises:
            SandboxError: On containment violations and on any filesystem
                failure (missing parent, missing target, not a directory).
        """
        safe, target = self.resolve(command.path)
        try:
            if isinstance(command, CreateFile):
                self._require_not_root(target, command.verb)
                with open(target, "w"):
                    pass
                result = CommandResult(verb=command.verb, path=safe)
            elif isinstance(command, CreateDirectory):
                target.mkdir(parents=True, exist_ok=True)
                result = CommandResult(verb=command.verb, path=safe)
            elif isinstance(command, DeletePath):
                self._require_not_root(target, command.verb)
                if target.is_dir():
                    shutil.rmtree(target)
                else:
                    # Raises FileNotFoundError for missing targets
                    target.stat()
                    target.unlink()
                result = CommandResult(verb=command.verb, path=safe)
            else:
                entries = sorted(os.listdir(target))
                result = CommandResult(verb=command.verb, path=safe, entries=entries)
        except OSError as e:
            raise SandboxError(f"{e.strerror or e}: {safe}") from e

        logger.info("Sandbox %s %s", command.verb, safe)
        return result

    async def run(self, command: SandboxCommand) -> CommandResult:
        """Run a command in the default executor (filesystem I/O)."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.execute, command)

    def _require_not_root(self, target: Path, verb: str) -> None:
        if target == self._root:
            raise InvalidCommand(f"{verb} cannot target the project root")
