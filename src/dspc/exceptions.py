"""dspc Exceptions

Custom exceptions for the dsp template compiler.
"""

from __future__ import annotations


class DspError(Exception):
    """Base exception for all dspc errors."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        self.message = message
        self.exit_code = exit_code
        super().__init__(message)


# =============================================================================
# Parse errors
# =============================================================================


class TemplateSyntaxError(DspError):
    """Raised when a template cannot be parsed."""

    def __init__(
        self,
        detail: str,
        *,
        source: str | None = None,
        line: int | None = None,
    ) -> None:
        self.detail = detail
        self.source = source
        self.line = line
        super().__init__(self._format(detail, source, line))

    @staticmethod
    def _format(detail: str, source: str | None, line: int | None) -> str:
        if source is None:
            return detail
        if line is None:
            return f"{source}: {detail}"
        return f"{source}:{line}: {detail}"


class UnknownDirectiveError(TemplateSyntaxError):
    """Raised for a directive identifier that is not recognized."""

    def __init__(self, directive: str, **kwargs) -> None:
        self.directive = directive
        super().__init__(f"Unknown template directive: {directive}", **kwargs)


class DuplicateDirectiveError(TemplateSyntaxError):
    """Raised when a single-use directive appears a second time."""

    def __init__(self, directive: str, **kwargs) -> None:
        self.directive = directive
        super().__init__(
            f"Cannot have more than one '<%{directive} ... %>' directive.", **kwargs
        )


class UnterminatedTagError(TemplateSyntaxError):
    """Raised when the input ends inside an open tag."""


class MalformedTagError(TemplateSyntaxError):
    """Raised when a tag's closing marker or required operand is missing."""


# =============================================================================
# Code generation errors
# =============================================================================


class CodeGenerationError(DspError):
    """Base exception for failures while emitting Python source."""


class UnknownNodeError(CodeGenerationError):
    """Raised when the generator meets a node type it does not know."""

    def __init__(self, node: object) -> None:
        self.node = node
        super().__init__(f"Unknown node: {type(node).__name__}")


class DedentTooFarError(CodeGenerationError):
    """Raised when an `end` block closes more suites than were opened."""


class UnbalancedBlockError(CodeGenerationError):
    """Raised when code blocks leave suites open at the end of a template."""


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigError(DspError):
    """Raised for unreadable, invalid or incomplete configuration."""
