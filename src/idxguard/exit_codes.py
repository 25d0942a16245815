"""Standardized CLI exit codes for idxguard.

Exit code scheme:

    0  SUCCESS     -- no missing indexes found, nothing to check, or skipped
    1  VIOLATIONS  -- one or more foreign-key columns lack an index
    1  ERROR       -- fatal precondition failure (schema.rb missing,
                      unreadable migration, unsupported Python)
    2  USAGE_ERROR -- invalid arguments, bad flags (Click default)

CI only needs to distinguish "passed" (0) from "did not pass" (non-zero);
the message on stderr tells a fatal error apart from violations.
"""

from __future__ import annotations

import sys

import click

# ---------------------------------------------------------------------------
# Exit code constants
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VIOLATIONS: int = 1
EXIT_ERROR: int = 1

MIN_PYTHON = (3, 9)

# ---------------------------------------------------------------------------
# Custom exceptions (caught by Click, printed as "Error: ...")
# ---------------------------------------------------------------------------


class IdxGuardError(click.ClickException):
    """Base class for idxguard errors with exit codes."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.exit_code = exit_code

    def format_message(self) -> str:
        return self.message


class SnapshotMissingError(IdxGuardError):
    """Raised when the schema snapshot file does not exist or cannot be read."""

    def __init__(self, path: str, cause: Exception | None = None):
        if isinstance(cause, OSError):
            message = f"cannot read schema.rb at {path}: {cause.strerror or cause}"
        else:
            message = f"schema.rb not found at {path}"
        super().__init__(message)
        self.path = path


class MigrationReadError(IdxGuardError):
    """Raised when a changed migration file cannot be read."""

    def __init__(self, path: str, cause: Exception | None = None):
        detail = f": {cause.strerror or cause}" if isinstance(cause, OSError) else ""
        super().__init__(f"cannot read migration {path}{detail}")
        self.path = path


class UnsupportedRuntimeError(IdxGuardError):
    """Raised when running on a Python older than :data:`MIN_PYTHON`."""

    def __init__(self, version_info=None):
        vi = version_info or sys.version_info
        required = ".".join(str(p) for p in MIN_PYTHON)
        super().__init__(
            f"idxguard requires Python {required} or later. "
            f"Your current Python version is: {vi[0]}.{vi[1]}. "
            "Please upgrade your Python version to run this tool."
        )


def check_runtime(version_info=None) -> None:
    """Raise :class:`UnsupportedRuntimeError` on a too-old interpreter."""
    vi = version_info or sys.version_info
    if tuple(vi[:2]) < MIN_PYTHON:
        raise UnsupportedRuntimeError(vi)
