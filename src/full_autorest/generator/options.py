"""Options model controlling a single AutoRest invocation.

:class:`GeneratorOptions` is a small builder: every optional field has a
getter returning ``(resolved_value, explicitly_set)``, a setter that marks
the field as set and returns the options object (``None`` is rejected), and
a ``clear_*`` companion that restores the unset state. Nothing here performs I/O or validation;
malformed tags or package identifiers are the generator's problem.

Example::

    options = (
        GeneratorOptions()
        .set_output_folder("/tmp/out")
        .set_tag("package-2018-12")
        .set_stdout(sys.stdout.buffer)
    )
    folder, explicit = options.output_folder()

:class:`GeneratorLanguage` enumerates the well-known language generators.
It is deliberately open: anything accepting a language also accepts a plain
string token, resolved with :func:`language_flag`.
"""

from __future__ import annotations

import copy
import enum
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

Sink = Any
"""A byte sink: anything with ``write(bytes)``, a file object, or ``subprocess.DEVNULL``."""

DISCARD: int = subprocess.DEVNULL
"""Resolved sink for unset stdout/stderr: output is thrown away unread."""


class GeneratorLanguage(str, enum.Enum):
    """Well-known AutoRest language generators.

    Values are the flag tokens passed to ``autorest``. The list is not meant
    to be exhaustive; new generators appear over time, so callers may pass
    any other token as a plain string.
    """

    DOTNET = "--net"
    GO = "--go"
    JAVA = "--java"
    RUBY = "--ruby"
    PHP = "--php"
    PYTHON = "--python"
    SWIFT = "--swift"


def language_flag(language: Union[GeneratorLanguage, str]) -> str:
    """Resolve *language* to the flag token passed to ``autorest``.

    Enum members resolve to their value, tokens already starting with ``--``
    pass through unchanged and bare names (``"typescript"``) are prefixed.
    """
    if isinstance(language, GeneratorLanguage):
        return language.value
    token = str(language)
    if token.startswith("--"):
        return token
    return f"--{token}"


def _required(value: Any, field: str) -> Any:
    if value is None:
        raise ValueError(f"{field} cannot be None; use clear_{field}() to unset it")
    return value


def default_output_folder() -> Path:
    """Return the output folder used when none was set: ``<tempdir>/generated``."""
    return Path(tempfile.gettempdir()) / "generated"


class GeneratorOptions:
    """All of the flags and stream bindings that control one AutoRest run.

    A fresh instance is meant to be built per invocation and not shared
    between concurrent runs. Use :meth:`copy` to derive a variant without
    touching the original.
    """

    def __init__(self) -> None:
        self._output_folder: Optional[Path] = None
        self._tag: Optional[str] = None
        self._use: Optional[str] = None
        self._stdout: Optional[Sink] = None
        self._stderr: Optional[Sink] = None

    def __repr__(self) -> str:
        return (
            f"GeneratorOptions(output_folder={self._output_folder!r}, "
            f"tag={self._tag!r}, use={self._use!r})"
        )

    def copy(self) -> GeneratorOptions:
        """Return an independent copy; sinks are shared by reference."""
        return copy.copy(self)

    # ------------------------------------------------------------------ #
    # Output folder
    # ------------------------------------------------------------------ #

    def output_folder(self) -> tuple[Path, bool]:
        """Location AutoRest should write generated files to.

        Defaults to ``<tempdir>/generated`` when unset.
        """
        if self._output_folder is None:
            return default_output_folder(), False
        return self._output_folder, True

    def set_output_folder(self, path: Union[str, Path]) -> GeneratorOptions:
        self._output_folder = Path(_required(path, "output_folder"))
        return self

    def clear_output_folder(self) -> GeneratorOptions:
        self._output_folder = None
        return self

    # ------------------------------------------------------------------ #
    # --tag
    # ------------------------------------------------------------------ #

    def tag(self) -> tuple[str, bool]:
        """Value for ``--tag``. When unset the flag is not passed at all."""
        if self._tag is None:
            return "", False
        return self._tag, True

    def set_tag(self, value: str) -> GeneratorOptions:
        """Overwrite the value used for ``--tag``."""
        self._tag = _required(value, "tag")
        return self

    def clear_tag(self) -> GeneratorOptions:
        """Restore the default behaviour of not passing ``--tag``."""
        self._tag = None
        return self

    # ------------------------------------------------------------------ #
    # --use
    # ------------------------------------------------------------------ #

    def use(self) -> tuple[str, bool]:
        """Value for ``--use``. By default the flag is not used."""
        if self._use is None:
            return "", False
        return self._use, True

    def set_use(self, value: str) -> GeneratorOptions:
        """Overwrite the value used for ``--use``.

        This should be formatted as an npm package identifier, for example
        ``@microsoft.azure/autorest.go@~2`` or
        ``@microsoft.azure/autorest.go@2.1.87``.
        """
        self._use = _required(value, "use")
        return self

    def clear_use(self) -> GeneratorOptions:
        self._use = None
        return self

    # ------------------------------------------------------------------ #
    # Output streams
    # ------------------------------------------------------------------ #

    def stdout(self) -> tuple[Sink, bool]:
        """Sink receiving AutoRest's standard output. Discarded by default."""
        if self._stdout is None:
            return DISCARD, False
        return self._stdout, True

    def set_stdout(self, sink: Sink) -> GeneratorOptions:
        self._stdout = _required(sink, "stdout")
        return self

    def clear_stdout(self) -> GeneratorOptions:
        self._stdout = None
        return self

    def stderr(self) -> tuple[Sink, bool]:
        """Sink receiving AutoRest's standard error. Discarded by default."""
        if self._stderr is None:
            return DISCARD, False
        return self._stderr, True

    def set_stderr(self, sink: Sink) -> GeneratorOptions:
        self._stderr = _required(sink, "stderr")
        return self

    def clear_stderr(self) -> GeneratorOptions:
        """Restore the default of discarding standard error."""
        self._stderr = None
        return self
