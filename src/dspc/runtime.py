"""Runtime support for generated templates.

Generated `render_template(ctx, emit_slot=None)` functions only need a
context that exposes `emit`, `data` and `with_data`; `Context` is the
reference implementation.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable


@dataclass(frozen=True)
class Context:
    """The rendering context given to the render functions of templates."""

    emit: Callable[[str], None]
    data: Any = None

    def with_data(self, data: Any) -> "Context":
        """Return a context sharing this emitter but holding `data`."""
        return replace(self, data=data)


def render_to_string(render: Callable[..., None], data: Any = None, **kwargs: Any) -> str:
    """Run a render function and collect everything it emits.

    Example:
        >>> from app.views import index
        >>> render_to_string(index.render_template, {"title": "Home"})
    """
    parts: list[str] = []
    render(Context(parts.append, data), **kwargs)
    return "".join(parts)
