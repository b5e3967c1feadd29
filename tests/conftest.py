"""Shared helpers for dspc tests."""

import importlib
from pathlib import Path
from typing import Any

import pytest

from dspc import generate_module, parse_template, render_to_string


def compile_source(text: str, namespace: str = "", name: str = "page") -> str:
    """Parse and generate a template given as text."""
    return generate_module(parse_template(text), namespace, name)


def render(text: str, data: Any = None, **kwargs: Any) -> str:
    """Compile a standalone template and render it with `data`."""
    source = compile_source(text)
    namespace: dict[str, Any] = {}
    exec(compile(source, "<generated>", "exec"), namespace)
    return render_to_string(namespace["render_template"], data, **kwargs)


class TemplatePackage:
    """An importable package of generated template modules."""

    def __init__(self, root: Path, package: str) -> None:
        self.root = root
        self.package = package
        self.dir = root / package
        self.dir.mkdir()
        (self.dir / "__init__.py").write_text("")

    def add(self, name: str, text: str) -> Path:
        path = self.dir / f"{name}.py"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(compile_source(text, self.package, name))
        return path

    def module(self, name: str):
        importlib.invalidate_caches()
        return importlib.import_module(f"{self.package}.{name.replace('/', '.')}")

    def render(self, name: str, data: Any = None) -> str:
        return render_to_string(self.module(name).render_template, data)


@pytest.fixture
def template_package(tmp_path, monkeypatch) -> TemplatePackage:
    """A fresh, uniquely named package on sys.path."""
    monkeypatch.syspath_prepend(str(tmp_path))
    return TemplatePackage(tmp_path, f"dsp_{tmp_path.name}")


@pytest.fixture(name="render")
def render_fixture():
    """Render a standalone template: render(text, data=None, **kwargs)."""
    return render


@pytest.fixture(name="compile_source")
def compile_source_fixture():
    """Generate module source: compile_source(text, namespace="", name="page")."""
    return compile_source
