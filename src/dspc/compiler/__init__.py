"""dspc compiler - transforms parsed templates to Python modules."""

from dspc.compiler.codegen import CodeGenerator, generate_module
from dspc.compiler.module import GeneratedModule
from dspc.compiler.writer import SourceWriter

__all__ = ["CodeGenerator", "GeneratedModule", "SourceWriter", "generate_module"]
