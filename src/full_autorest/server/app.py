"""FastAPI application factory and uvicorn launcher.

The application exposes two routes:

========  ==============  ==============================================
Method    Path            Purpose
========  ==============  ==============================================
GET/POST  ``/generate``   Run AutoRest and stream its output back
GET       ``/healthz``    Liveness probe with the package version
========  ==============  ==============================================

``/generate`` accepts optional query parameters ``language``, ``spec``
(repeatable), ``tag`` and ``buffered``; see
:mod:`full_autorest.server.handler` for the response contract. Values that
would turn into extra generator flags are rejected with 422. The generator
package (``--use``) is never taken from a request.

Configuration is passed into :func:`create_app` explicitly; the app never
reads settings from module-level state.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import Response

from full_autorest import __version__
from full_autorest.generator.options import GeneratorLanguage
from full_autorest.models import GenerationRequest, GlobalConfig
from full_autorest.server.handler import GenerateHandler

logger = logging.getLogger(__name__)

_LANGUAGE_NAME = re.compile(r"^[a-z][a-z0-9]*$")
_LANGUAGE_FLAGS = frozenset(member.value for member in GeneratorLanguage)


def _validate_generate_params(language: Optional[str], specs: list[str]) -> None:
    """Reject query values that would reach ``autorest`` as extra flags.

    Raises:
        HTTPException: 422 for an unknown language token or a spec that
            starts with ``-``.
    """
    if language is not None and not (
        language in _LANGUAGE_FLAGS or _LANGUAGE_NAME.match(language)
    ):
        raise HTTPException(
            status_code=422,
            detail=f"language must be a generator name such as 'go' or '--python', got: {language!r}",
        )
    for spec in specs:
        if not spec or spec.startswith("-"):
            raise HTTPException(
                status_code=422,
                detail=f"spec must be a URL or path, got: {spec!r}",
            )


def create_app(config: GlobalConfig) -> FastAPI:
    """Build the FastAPI application for *config*.

    Args:
        config: Fully resolved configuration (see
            :func:`~full_autorest.config.resolve_config`).

    Returns:
        A ready-to-serve :class:`fastapi.FastAPI` instance.
    """
    app = FastAPI(
        title="full_autorest",
        description="Generate client libraries with AutoRest over HTTP.",
        version=__version__,
    )
    app.state.config = config
    handler = GenerateHandler(config.generator)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.api_route("/generate", methods=["GET", "POST"])
    async def generate(
        request: Request,
        language: Optional[str] = None,
        spec: Optional[list[str]] = Query(default=None),
        tag: Optional[str] = None,
        buffered: bool = False,
    ) -> Response:
        specs = spec or []
        _validate_generate_params(language, specs)
        generation = GenerationRequest(
            language=language,
            specs=specs,
            tag=tag,
            buffered=buffered,
        )
        return await handler(generation, request.is_disconnected)

    return app


def run(config: GlobalConfig) -> None:
    """Serve :func:`create_app` with uvicorn until interrupted."""
    import uvicorn

    logger.info("starting full_autorest server on port %d", config.server.port)
    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level,
    )
