"""Driver - compiles a tree of templates into a tree of Python modules.

For every `<input_dir>/<rel>.dsp` the driver writes `<output_dir>/<rel>.py`
defining module `<package>.<rel as dotted path>`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from dspc.ast.parser import Parser
from dspc.compiler.codegen import CodeGenerator, path_to_module, qualify
from dspc.compiler.module import GeneratedModule
from dspc.config import CompilerConfig
from dspc.exceptions import ConfigError, DspError

log = logging.getLogger(__name__)


def discover_templates(input_dir: Path, suffix: str = ".dsp") -> List[Path]:
    """Find every template below `input_dir`, in a stable order."""
    return sorted(p for p in input_dir.rglob(f"*{suffix}") if p.is_file())


def template_name_for(relative_path: Path) -> str:
    """`pages/index.dsp` -> `pages/index`"""
    return relative_path.with_suffix("").as_posix()


def module_name_for(relative_path: Path) -> str:
    """`pages/index.dsp` -> `pages.index`"""
    return path_to_module(template_name_for(relative_path))


def output_path_for(relative_path: Path, output_dir: Path) -> Path:
    """`pages/index.dsp` -> `<output_dir>/pages/index.py`"""
    return output_dir / relative_path.with_suffix(".py")


def compile_file(
    path: Path,
    namespace: str,
    name: str,
    parser: Optional[Parser] = None,
    generator: Optional[CodeGenerator] = None,
) -> GeneratedModule:
    """Parse and generate a single template file."""
    parser = parser or Parser()
    generator = generator or CodeGenerator(namespace)
    template = parser.parse_file(path)
    return generator.generate(template, name)


def add_to_ignore_file(ignore_file: Path, entry: str) -> bool:
    """Append `entry` to an existing ignore file unless already listed.

    Returns:
        True if the file was changed.
    """
    if not ignore_file.is_file():
        return False

    content = ignore_file.read_text(encoding="utf-8")
    if entry in content.splitlines():
        return False

    with open(ignore_file, "a", encoding="utf-8") as f:
        if content and not content.endswith("\n"):
            f.write("\n")
        f.write(entry)
        f.write("\n")
    return True


@dataclass
class BuildReport:
    """What a build wrote and which templates failed."""

    written: List[Path] = field(default_factory=list)
    modules: List[GeneratedModule] = field(default_factory=list)
    failures: List[Tuple[Path, DspError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class Driver:
    """Compiles every template under the configured input directory."""

    def __init__(self, config: CompilerConfig):
        config.require()
        self.config = config
        self.package = str(config.package)
        self.input_dir = Path(os.path.normpath(Path(str(config.input_dir)).absolute()))
        self.output_dir = Path(str(config.output_dir))
        self.parser = Parser()
        self.generator = CodeGenerator(self.package)

    def compile(self, path: Path) -> GeneratedModule:
        """Compile one template found below the input directory."""
        rel = path.relative_to(self.input_dir)
        return compile_file(
            path,
            self.package,
            template_name_for(rel),
            parser=self.parser,
            generator=self.generator,
        )

    def run(self, write: bool = True) -> BuildReport:
        """Compile all templates; write them unless `write` is False."""
        report = BuildReport()
        log.info("using %s as output directory", self.output_dir)
        log.info("using %s as input base", self.input_dir)

        for path in discover_templates(self.input_dir, self.config.suffix):
            rel = path.relative_to(self.input_dir)
            log.info(
                "process %s as %s",
                rel.as_posix(),
                qualify(self.package, module_name_for(rel)),
            )
            try:
                generated = self.compile(path)
            except DspError as e:
                if not self.config.keep_going:
                    raise
                log.error("%s", e.message)
                report.failures.append((path, e))
                continue

            report.modules.append(generated)
            if write:
                out_path = output_path_for(rel, self.output_dir)
                self._write(out_path, generated.source)
                report.written.append(out_path)

        if write:
            self._update_ignore_files()
        return report

    def _write(self, out_path: Path, source: str) -> None:
        out_dir = out_path.parent
        if out_dir.exists() and not out_dir.is_dir():
            raise ConfigError(
                f"Cannot write to {out_path}: {out_dir} is not a directory!"
            )
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except FileExistsError as e:
            raise ConfigError(f"Cannot write to {out_path}: {e}") from e
        out_path.write_text(source, encoding="utf-8")
        log.debug("wrote %s", out_path)

    def _update_ignore_files(self) -> None:
        root = self.config.project_root
        if root is None:
            return
        log.info("using %s as package root to populate ignore files", root)

        try:
            entry = self.output_dir.absolute().relative_to(root.absolute()).as_posix()
        except ValueError:
            log.warning("output directory %s is outside %s", self.output_dir, root)
            return
        if entry == ".":
            log.warning("output directory is the package root, ignore files left alone")
            return
        entry = entry.rstrip("/") + "/"

        for name in self.config.ignore_files:
            if add_to_ignore_file(root / name, entry):
                log.info("added %s to %s", entry, name)
