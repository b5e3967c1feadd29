"""GeneratedModule - output of the code generator."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GeneratedModule:
    """Python source for one template plus metadata for diagnostics."""

    name: str  # template name, e.g. "pages/index"
    module: str  # dotted module path, e.g. "app.views.pages.index"
    source: str
    has_slot: bool = False
    layout: Optional[str] = None
    attrs: Optional[str] = None
