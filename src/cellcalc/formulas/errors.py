"""Error codes returned by the engine and the internal exception types."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Closed set of error codes a :class:`FormulaResult` may carry.

    Functions return these as ordinary values; they never cross the public
    entry point as exceptions.
    """

    REF = "#REF!"
    VALUE = "#VALUE!"
    NA = "#N/A"
    NAME = "#NAME?"
    ERROR = "#ERROR!"

    def __str__(self) -> str:
        return self.value


class FormulaError(Exception):
    """Base class for all formula-related errors."""


class FormulaParseError(FormulaError):
    """Syntax error in a plain arithmetic expression.

    Attributes:
        position: Token index where the error was detected.
        message: Human-readable description.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at token {position})"
        super().__init__(full)


class FormulaFunctionError(FormulaError):
    """Wrong number or kind of arguments passed to a built-in function.

    Attributes:
        func_name: The function that caused the error.
    """

    def __init__(self, func_name: str, message: str | None = None) -> None:
        self.func_name = func_name
        msg = message or f"Invalid call to {func_name}"
        super().__init__(msg)


class FormulaDepthError(FormulaError):
    """Nested function calls exceeded the configured ceiling."""

    def __init__(self, depth: int, limit: int) -> None:
        self.depth = depth
        self.limit = limit
        super().__init__(f"Formula nesting depth {depth} exceeds limit of {limit}")

