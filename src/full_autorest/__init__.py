"""full_autorest -- serve AutoRest client-library generation over HTTP.

This package exposes a ``/generate`` endpoint that runs the external
``autorest`` generator as a subprocess and streams its output back to the
caller. Every request gets its own temporary output directory, a fixed
deadline, and a guaranteed cleanup path.

Typical workflow::

    full_autorest start --port 8080        # serve /generate
    full_autorest generate --language go https://.../readme.md

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic configuration models.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    generator: Options model and process invoker for AutoRest.
    server: FastAPI application and the ``/generate`` request handler.
"""

__version__ = "0.1.0"
