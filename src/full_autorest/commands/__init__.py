"""Built-in CLI sub-commands for full_autorest.

* :mod:`~full_autorest.commands.start` -- serve ``/generate`` over HTTP.
* :mod:`~full_autorest.commands.generate` -- run AutoRest once, locally.
* :mod:`~full_autorest.commands.config` -- view and modify global settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``config``) or a plain callback function
registered directly on the root app (for single commands like ``start``).
"""
