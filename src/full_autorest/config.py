"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for full_autorest:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.full_autorest/`` on macOS and Windows. See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **Global config** -- A single :class:`~full_autorest.models.GlobalConfig`
  JSON file storing server and generator defaults.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the global config into the final effective
  configuration. The result is built once at startup and handed to the
  server explicitly.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from full_autorest.exceptions import ConfigError
from full_autorest.models import GlobalConfig

_APP_NAME = "full_autorest"
_CONFIG_FILENAME = "config.json"

ENV_PORT = "FULL_AUTOREST_PORT"
ENV_HOST = "FULL_AUTOREST_HOST"
ENV_TIMEOUT = "FULL_AUTOREST_TIMEOUT"
ENV_EXECUTABLE = "FULL_AUTOREST_EXECUTABLE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/full_autorest/`` (default
    ``~/.config/full_autorest/``). On macOS/Windows: ``~/.full_autorest/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/full_autorest/`` (default
    ``~/.local/share/full_autorest/``). On macOS/Windows:
    ``~/.full_autorest/logs/``.
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~full_autorest.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def _env_number(name: str, kind: type) -> Optional[float]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigError(f"Environment variable {name} must be a number, got: {raw}") from exc


def resolve_config(
    cli_port: Optional[int] = None,
    cli_host: Optional[str] = None,
    cli_timeout: Optional[float] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_port``, ``cli_host``, ``cli_timeout``)
        2. Environment variables (``FULL_AUTOREST_PORT``,
           ``FULL_AUTOREST_HOST``, ``FULL_AUTOREST_TIMEOUT``,
           ``FULL_AUTOREST_EXECUTABLE``)
        3. User config (``~/.config/full_autorest/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~full_autorest.models.GlobalConfig`.

    Raises:
        ConfigError: If the config file is invalid or an override fails
            validation.
    """
    config = load_global_config()
    data = config.model_dump(mode="json")
    server = data["server"]
    generator = data["generator"]

    # 2. Environment variables
    env_port = _env_number(ENV_PORT, int)
    if env_port is not None:
        server["port"] = env_port
    env_host = os.environ.get(ENV_HOST)
    if env_host:
        server["host"] = env_host
    env_timeout = _env_number(ENV_TIMEOUT, float)
    if env_timeout is not None:
        generator["timeout_seconds"] = env_timeout
    env_executable = os.environ.get(ENV_EXECUTABLE)
    if env_executable:
        generator["executable"] = env_executable

    # 1. CLI flags (highest precedence)
    if cli_port is not None:
        server["port"] = cli_port
    if cli_host is not None:
        server["host"] = cli_host
    if cli_timeout is not None:
        generator["timeout_seconds"] = cli_timeout

    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
