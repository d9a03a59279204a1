"""Start command -- serve ``/generate`` over HTTP.

Resolves the effective configuration once, configures logging, and hands
both to :func:`full_autorest.server.run`.
"""

from __future__ import annotations

import logging
from typing import Optional

import typer

from full_autorest.output import debug

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Route server logs to stderr at INFO (DEBUG with ``--verbose``)."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
    )


def start_command(
    ctx: typer.Context,
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="The port that should be used to listen for requests. [default: 80]",
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Interface to bind. [default: 0.0.0.0]"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds a single generation may run. [default: 300]"
    ),
) -> None:
    """Start the generation server.

    Example::

        full_autorest start
        full_autorest start --port 8080 --timeout 120
    """
    from full_autorest.config import resolve_config
    from full_autorest.server import run

    verbose = ctx.obj.get("verbose", False) if ctx.obj else False
    config = resolve_config(cli_port=port, cli_host=host, cli_timeout=timeout)
    if verbose:
        config.server.log_level = "debug"
    configure_logging(verbose)
    debug(f"Effective config: {config.model_dump(mode='json')}")

    run(config)
