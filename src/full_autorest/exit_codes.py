"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~full_autorest.exceptions.FullAutorestError` subclass.
Shell wrappers can inspect the exit code of ``full_autorest generate`` to
tell a generator failure apart from a missing binary or a timeout.

Example::

    $ full_autorest generate --language go ./readme.md
    $ echo $?
    8   # EXIT_GENERATOR_FAILED -- autorest itself exited non-zero
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_GENERATOR_NOT_FOUND = 4
"""The generator executable could not be found on ``PATH``."""

EXIT_WORKSPACE_ERROR = 5
"""A temporary output directory could not be created."""

EXIT_INVOCATION_ERROR = 6
"""The generator process could not be started or managed."""

EXIT_GENERATOR_FAILED = 8
"""The generator ran to completion but exited with a non-zero status."""

EXIT_TIMEOUT = 124
"""The generator exceeded its deadline and was killed (matches ``timeout(1)``)."""

EXIT_CANCELLED = 130
"""The invocation was cancelled by the caller."""
