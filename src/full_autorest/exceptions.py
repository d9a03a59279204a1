"""Exception hierarchy for full_autorest.

All exceptions inherit from :class:`FullAutorestError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`full_autorest.exit_codes`.
The top-level error handler in :func:`full_autorest.app.main` catches
``FullAutorestError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Invocation outcomes are split into two disjoint branches so callers can
tell *the generator said no* apart from *the generator never ran properly*:

Subclass hierarchy::

    FullAutorestError (exit 1)
    +-- ConfigError                  (exit 1)
    +-- WorkspaceError               (exit 5)
    +-- InvocationError              (exit 6)   infrastructure failure
    |   +-- GeneratorNotFoundError   (exit 4)
    |   +-- InvocationTimeoutError   (exit 124)
    |   +-- InvocationCancelledError (exit 130)
    +-- GeneratorFailedError         (exit 8)   tool failure
"""

from __future__ import annotations

from full_autorest.exit_codes import (
    EXIT_CANCELLED,
    EXIT_GENERATOR_FAILED,
    EXIT_GENERATOR_NOT_FOUND,
    EXIT_GENERIC_FAILURE,
    EXIT_INVOCATION_ERROR,
    EXIT_TIMEOUT,
    EXIT_WORKSPACE_ERROR,
)


class FullAutorestError(Exception):
    """Base exception for all full_autorest errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`full_autorest.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(FullAutorestError):
    """Raised for configuration problems (invalid JSON, bad values, unknown keys)."""

    exit_code = EXIT_GENERIC_FAILURE


class WorkspaceError(FullAutorestError):
    """Raised when the temporary output directory for a run cannot be created."""

    exit_code = EXIT_WORKSPACE_ERROR


class InvocationError(FullAutorestError):
    """Raised when the generator process could not be started or managed.

    This is the *infrastructure failure* branch: the generator never got the
    chance to report its own verdict.
    """

    exit_code = EXIT_INVOCATION_ERROR
    kind: str = "invocation"


class GeneratorNotFoundError(InvocationError):
    """Raised when the generator executable is not on ``PATH``."""

    exit_code = EXIT_GENERATOR_NOT_FOUND
    kind = "not-found"


class InvocationTimeoutError(InvocationError):
    """Raised when the deadline expired and the generator was killed."""

    exit_code = EXIT_TIMEOUT
    kind = "timeout"


class InvocationCancelledError(InvocationError):
    """Raised when the caller cancelled the invocation."""

    exit_code = EXIT_CANCELLED
    kind = "cancelled"


class GeneratorFailedError(FullAutorestError):
    """Raised when the generator ran to completion but exited non-zero.

    Args:
        returncode: The generator's exit status.
        message: Optional override for the default message.
    """

    exit_code = EXIT_GENERATOR_FAILED
    kind = "generator-failed"

    def __init__(self, returncode: int, message: str | None = None):
        super().__init__(message or f"autorest exited with status {returncode}")
        self.returncode = returncode
