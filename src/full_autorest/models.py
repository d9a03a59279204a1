"""Canonical Pydantic models shared across full_autorest.

**Configuration models** -- serialised as JSON in the user's config
directory and resolved once at startup:
    :class:`ServerConfig`, :class:`GeneratorConfig`, :class:`OutputConfig`
    and the umbrella :class:`GlobalConfig`.

**Request models** -- parsed from the ``/generate`` query string:
    :class:`GenerationRequest`.

All models use Pydantic v2. A :class:`GlobalConfig` instance is built by
:func:`~full_autorest.config.resolve_config` and passed explicitly to the
server factory; nothing reads configuration from module-level state.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

DEFAULT_INPUT_SPEC = (
    "https://github.com/Azure/azure-rest-api-specs/blob/"
    "27c79e5cf0a222441b18828ae81551308e84c758/"
    "specification/batch/resource-manager/readme.md"
)
"""Input specification used when a request does not name one."""


class ServerConfig(BaseModel):
    """Listener settings for ``full_autorest start``."""

    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(
        default=80,
        ge=0,
        le=65535,
        description="The port that should be used to listen for requests.",
    )
    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")


class GeneratorConfig(BaseModel):
    """How each ``/generate`` request invokes AutoRest.

    ``language`` and ``input_specs`` are the per-request defaults; a request
    may override them through query parameters. ``timeout_seconds`` is the
    hard ceiling for every run and cannot be overridden per request.
    """

    executable: str = Field(
        default="autorest", description="Generator binary, resolved through PATH"
    )
    timeout_seconds: float = Field(
        default=300.0, gt=0, description="Deadline for one generator run"
    )
    language: str = Field(default="--go", description="Default language flag token")
    input_specs: list[str] = Field(
        default_factory=lambda: [DEFAULT_INPUT_SPEC],
        description="Default input specification locations",
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: Literal["auto", "json", "plain", "rich"] = Field(
        default="auto",
        description="Default CLI output format when neither --json nor --plain is given",
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/full_autorest/config.json``.

    Loaded and saved by :func:`~full_autorest.config.load_global_config` and
    :func:`~full_autorest.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by environment variables or CLI
    flags. See :func:`~full_autorest.config.resolve_config` for the full
    precedence chain.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


class GenerationRequest(BaseModel):
    """Per-request overrides accepted by ``/generate``.

    Every field is optional; unset fields fall back to
    :class:`GeneratorConfig`. ``buffered`` trades streaming for an HTTP
    status code that reflects the generator's outcome. The generator
    package (``--use``) is not a request field.
    """

    language: Optional[str] = None
    specs: list[str] = Field(default_factory=list)
    tag: Optional[str] = None
    buffered: bool = False
