"""Shared test fixtures for full_autorest.

Provides isolated config environments, output-state reset, a CLI
runner, and ``stub_generator`` -- a factory that installs a throwaway
``autorest`` shell script at the front of ``PATH`` so invocation tests
exercise real subprocesses without needing AutoRest installed.
"""

from __future__ import annotations

import json
import os
import re
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from full_autorest.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, and clears all
    FULL_AUTOREST_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("full_autorest.config._is_xdg_platform", lambda: True)

    for var in [
        "FULL_AUTOREST_PORT",
        "FULL_AUTOREST_HOST",
        "FULL_AUTOREST_TIMEOUT",
        "FULL_AUTOREST_EXECUTABLE",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Stub generator
# ---------------------------------------------------------------------------


@pytest.fixture
def stub_generator(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Callable[..., Path]:
    """Factory installing an executable ``/bin/sh`` script on ``PATH``.

    Usage::

        stub_generator('echo hello; exit 3')

    Returns:
        A callable ``(body, name="autorest") -> Path`` writing the script.
    """
    if os.name != "posix":
        pytest.skip("stub generators are POSIX shell scripts")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")

    def _install(body: str, name: str = "autorest") -> Path:
        script = bin_dir / name
        script.write_text("#!/bin/sh\n" + textwrap.dedent(body).lstrip("\n"))
        script.chmod(0o755)
        return script

    return _install


_OUTPUT_FOLDER_RE = re.compile(r'^--output-folder=(".*")$', re.MULTILINE)


@pytest.fixture
def parse_output_folder() -> Callable[[str], Path]:
    """Return a parser extracting the echoed ``--output-folder`` value from stub output."""

    def _parse(text: str) -> Path:
        match = _OUTPUT_FOLDER_RE.search(text)
        assert match is not None, text
        return Path(json.loads(match.group(1)))

    return _parse


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
