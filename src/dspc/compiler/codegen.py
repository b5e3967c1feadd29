"""CodeGenerator - turns a parsed Template into Python module source."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from dspc.ast.nodes import (
    CodeNode,
    ExprNode,
    IncludeNode,
    Node,
    SlotNode,
    Template,
    TextNode,
    VarNode,
)
from dspc.ast.parser import escape_text
from dspc.compiler.module import GeneratedModule
from dspc.compiler.writer import SourceWriter, normalize_block
from dspc.exceptions import UnknownNodeError

log = logging.getLogger(__name__)

# Blind textual substitutions applied to embedded code. They do not respect
# string literals or comments inside that code: `"a@b"` becomes
# `"actx.datab"`.
CTX_DATA_RE = re.compile(r"@")
CTX_EMIT_RE = re.compile(r"\$\(")

CTX_DATA = "ctx.data"
CTX_EMIT = "ctx.emit("

MODULE_TEMPLATE = "module.py.j2"


def substitute_data(code: str) -> str:
    """Replace every `@` with the context's data accessor."""
    return CTX_DATA_RE.sub(CTX_DATA, code)


def substitute_code(code: str) -> str:
    """Replace `@` and `$(` in a code block with context accessors."""
    return CTX_EMIT_RE.sub(CTX_EMIT, substitute_data(code))


def path_to_module(name: str) -> str:
    """Transform a (relative) template name to a dotted module name."""
    return name.replace("\\", ".").replace("/", ".")


def qualify(namespace: str, name: str) -> str:
    """Join the destination namespace and a template name into a module path."""
    module = path_to_module(name)
    if not namespace:
        return module
    return f"{namespace}.{module}"


def get_codegen_env() -> Environment:
    """Create the Jinja2 Environment holding the module skeleton."""
    templates_dir = Path(__file__).parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


class CodeGenerator:
    """Generates Python modules from parsed templates.

    Output depends only on the template and the naming parameters, so
    regenerating an unchanged template yields byte-identical source.
    """

    def __init__(self, namespace: str = "", env: Optional[Environment] = None):
        """Initialize the generator.

        Args:
            namespace: Dotted package that generated modules live in. Layout
                and include references are imported relative to it.
            env: Jinja2 environment providing `module.py.j2`.
        """
        self.namespace = namespace
        self._env = env or get_codegen_env()

    def generate(self, template: Template, name: str) -> GeneratedModule:
        """Generate the module for `template`.

        Args:
            template: The parsed template.
            name: Template name relative to the namespace, e.g. "pages/index".

        Returns:
            GeneratedModule with source text and template metadata.
        """
        module = qualify(self.namespace, name)

        # the body lives inside `def emit_body():` when wrapped by a layout
        writer = SourceWriter(level=2 if template.layout else 1)
        for node in template.nodes:
            self._emit_node(writer, node)
        body = writer.finish()

        tmpl = self._env.get_template(MODULE_TEMPLATE)
        source = tmpl.render(
            module=module,
            name=name,
            head=self._block(template.head),
            attrs=self._block(template.attrs),
            layout=qualify(self.namespace, template.layout) if template.layout else None,
            body=body,
        )

        log.debug("Generated %s (%d bytes)", module, len(source))
        return GeneratedModule(
            name=name,
            module=module,
            source=source,
            has_slot=template.has_slot,
            layout=template.layout,
            attrs=template.attrs,
        )

    @staticmethod
    def _block(text: Optional[str]) -> Optional[str]:
        if text is None:
            return None
        return "\n".join(normalize_block(text)) or None

    def _emit_node(self, writer: SourceWriter, node: Node) -> None:
        if isinstance(node, TextNode):
            writer.line(f'ctx.emit("{node.content}")')
        elif isinstance(node, CodeNode):
            writer.block(substitute_code(node.code))
        elif isinstance(node, SlotNode):
            writer.line("if emit_slot is not None:")
            writer.indent()
            writer.line("emit_slot()")
            writer.dedent()
        elif isinstance(node, ExprNode):
            writer.line(f"ctx.emit(str({substitute_data(node.expr).strip()}))")
        elif isinstance(node, VarNode):
            writer.line(f'ctx.emit(str(ctx.data["{escape_text(node.key)}"]))')
        elif isinstance(node, IncludeNode):
            target = qualify(self.namespace, node.name)
            writer.line(f"from {target} import render_template as render_include")
            if node.context:
                writer.line(f"render_include(ctx.with_data({substitute_data(node.context)}))")
            else:
                writer.line("render_include(ctx)")
        else:
            raise UnknownNodeError(node)


def generate_module(template: Template, namespace: str, name: str) -> str:
    """Generate Python source for `template` as module `namespace.name`."""
    return CodeGenerator(namespace).generate(template, name).source
