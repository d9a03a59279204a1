"""AutoRest invocation -- options model and process invoker.

Typical usage::

    from full_autorest.generator import GeneratorLanguage, GeneratorOptions, invoke

    options = GeneratorOptions().set_output_folder(out_dir).set_stdout(sys.stdout.buffer)
    invoke(GeneratorLanguage.GO, ["https://.../readme.md"], options, timeout=300)

Sub-modules:

* :mod:`~full_autorest.generator.options` -- :class:`GeneratorOptions`
  builder and the :class:`GeneratorLanguage` tags.
* :mod:`~full_autorest.generator.invoker` -- argument vector construction
  and the subprocess lifecycle.
"""

from full_autorest.generator.invoker import build_arguments, format_command, invoke
from full_autorest.generator.options import (
    GeneratorLanguage,
    GeneratorOptions,
    language_flag,
)

__all__ = [
    "GeneratorLanguage",
    "GeneratorOptions",
    "build_arguments",
    "format_command",
    "invoke",
    "language_flag",
]
