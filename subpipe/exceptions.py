"""Subpipe exceptions.

Errors raised here are the synchronous half of the error model: they surface
from ``start`` before any process, thread or descriptor has been committed.
Failures that happen after launch are never raised; they are encoded in the
status returned by ``wait``.
"""

from typing import List
from dataclasses import dataclass


class SubpipeError(Exception):
    """Base class for every error raised by subpipe."""


class ConfigurationError(SubpipeError, ValueError):
    """Raised when a node is started with streams or an environment it cannot use.

    This is a caller bug: stream capability violations, invalid pipe pairings
    and captures into a read-only environment all end up here.
    """


class SystemCallError(SubpipeError, OSError):
    """Raised when an OS primitive (pipe, fork/spawn, open) fails during start."""

    @classmethod
    def from_os_error(cls, error: OSError) -> "SystemCallError":
        return cls(error.errno, error.strerror, error.filename)


class VariableNotFound(SubpipeError, LookupError):
    """Raised when a variable reference is resolved against an environment that lacks it."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Variable not found: {name}")


@dataclass
class ValidationError:
    """Single script validation error."""
    message: str
    path: str = ""


class ScriptValidationError(SubpipeError):
    """Raised when a pipeline script fails validation.

    The loader collects every problem it finds before raising, so the CLI can
    report them all at once.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        self.exit_code = 2

        messages = []
        for error in errors:
            if error.path:
                messages.append(f"Validation error at {error.path}: {error.message}")
            else:
                messages.append(f"Validation error: {error.message}")

        super().__init__("\n".join(messages))
