"""Error types and in-band sentinel strings for formula evaluation."""

from __future__ import annotations

# Display strings shown in place of a value when a formula cannot be computed.
ERR = "#ERR"
DIV0 = "#DIV/0"

SENTINELS: frozenset[str] = frozenset({ERR, DIV0})


class FormulaError(Exception):
    """Base class for all formula-related errors."""


class FormulaParseError(FormulaError):
    """Syntax error in a formula body.

    Attributes:
        position: Character position where the error was detected.
        message: Human-readable description.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


# Everything the evaluator turns into ``#ERR`` instead of raising.
ENGINE_ERRORS: tuple[type[Exception], ...] = (FormulaError,)
