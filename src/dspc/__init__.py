"""dspc - dsp template compiler

Compiles `.dsp` templates into Python modules at build time. Each generated
module defines `render_template(ctx, emit_slot=None)`, which writes its
output through `ctx.emit` using the data in `ctx.data`.
"""

from dspc._version import __version__
from dspc.ast import Parser, Template, parse_template, parse_template_file
from dspc.compiler import CodeGenerator, GeneratedModule, generate_module
from dspc.config import CompilerConfig, load_config
from dspc.driver import Driver, compile_file
from dspc.exceptions import (
    CodeGenerationError,
    ConfigError,
    DspError,
    DuplicateDirectiveError,
    MalformedTagError,
    TemplateSyntaxError,
    UnknownDirectiveError,
    UnknownNodeError,
    UnterminatedTagError,
)
from dspc.runtime import Context, render_to_string

__all__ = [
    "__version__",
    # parsing
    "Parser",
    "Template",
    "parse_template",
    "parse_template_file",
    # code generation
    "CodeGenerator",
    "GeneratedModule",
    "generate_module",
    # build
    "CompilerConfig",
    "Driver",
    "compile_file",
    "load_config",
    # runtime
    "Context",
    "render_to_string",
    # errors
    "DspError",
    "TemplateSyntaxError",
    "UnknownDirectiveError",
    "DuplicateDirectiveError",
    "UnterminatedTagError",
    "MalformedTagError",
    "CodeGenerationError",
    "UnknownNodeError",
    "ConfigError",
]
