"""Generate command -- run AutoRest once on the local machine.

The same invocation path the server uses, without HTTP in between: the
generator's stdout and stderr go straight to this process's stdout and
stderr, and its outcome becomes the exit code (see
:mod:`full_autorest.exit_codes`).
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from full_autorest.output import data_stream, debug, error, info, print_data, success, suggest


def generate_command(
    ctx: typer.Context,
    specs: Optional[list[str]] = typer.Argument(
        None, help="Input specification locations. [default: from config]"
    ),
    language: Optional[str] = typer.Option(
        None, "--language", "-l", help="Generator language (go, python, --java, ...)."
    ),
    tag: Optional[str] = typer.Option(None, "--tag", help="Specification tag to generate."),
    use: Optional[str] = typer.Option(
        None, "--use", help="Generator package, e.g. @microsoft.azure/autorest.go@~2."
    ),
    output_folder: Optional[Path] = typer.Option(
        None, "--output-folder", "-O", help="Where generated files are written."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds the generator may run."
    ),
) -> None:
    """Run AutoRest once and stream its output to the terminal.

    Example::

        full_autorest generate --language python --tag package-2018-12 ./readme.md
        full_autorest --dry-run generate
    """
    from full_autorest.config import resolve_config
    from full_autorest.exceptions import FullAutorestError, GeneratorNotFoundError
    from full_autorest.generator import GeneratorOptions, format_command, invoke

    config = resolve_config(cli_timeout=timeout)
    generator = config.generator

    options = GeneratorOptions()
    if output_folder is not None:
        options.set_output_folder(output_folder)
    if tag is not None:
        options.set_tag(tag)
    if use is not None:
        options.set_use(use)

    selected_language = language or generator.language
    selected_specs = list(specs) if specs else list(generator.input_specs)
    command = format_command(
        selected_language, selected_specs, options, generator.executable
    )

    dry_run = ctx.obj.get("dry_run", False) if ctx.obj else False
    if dry_run:
        print_data(command)
        return

    debug(f"Running: {command}")
    folder, _ = options.output_folder()
    info(f"Generating into {folder}")

    sys.stderr.flush()
    options.set_stdout(data_stream()).set_stderr(getattr(sys.stderr, "buffer", sys.stderr))
    try:
        invoke(
            selected_language,
            selected_specs,
            options,
            timeout=generator.timeout_seconds,
            executable=generator.executable,
        )
    except GeneratorNotFoundError as exc:
        error(str(exc))
        suggest("Install it: npm install -g autorest")
        raise typer.Exit(code=exc.exit_code) from None
    except FullAutorestError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Generated into {folder}")
