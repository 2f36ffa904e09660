# wasmbuild/errors.py
"""Exceptions raised by wasmbuild."""

from __future__ import annotations
from typing import List, Sequence


class ConfigError(ValueError):
    """Configuration file could not be read, parsed or validated."""


class BuildAborted(Exception):
    """The run cannot continue; the process should exit with ``status``."""

    def __init__(self, message: str, status: int = 1):
        super().__init__(message)
        self.message = message
        self.status = status


class PrerequisiteMissing(BuildAborted):
    """A required tool is not on PATH."""

    def __init__(self, tool: str):
        super().__init__(f"Error: {tool} is required but not installed.", status=1)
        self.tool = tool


class CommandFailed(BuildAborted):
    """A delegated command exited non-zero."""

    def __init__(self, command: Sequence[str], status: int):
        self.command: List[str] = list(command)
        super().__init__(
            f"Command '{' '.join(self.command)}' failed with exit code {status}",
            status=status,
        )


class ManifestError(BuildAborted):
    pass


class OutputMissing(BuildAborted):
    pass
