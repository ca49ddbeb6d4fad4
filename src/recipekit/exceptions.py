"""
Recipe Engine Exception Hierarchy

Contains all exception classes raised by the lexer, binder, compiler and
pipeline executor.
"""

from typing import Any, Optional


class RecipeError(Exception):
    """
    Base exception for all recipe engine operations.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """
    pass


class FormatError(RecipeError, ValueError):
    """
    Raised when a byte-size or time-duration literal is malformed, carries an
    unknown unit, or is negative.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """

    def __init__(self, message: str, literal: Optional[str] = None):
        super().__init__(message)
        self.literal = literal


class ParseError(RecipeError):
    """
    Raised when recipe text violates the grammar.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """

    def __init__(
        self,
        message: str,
        line: int = 1,
        column: int = 1,
        literal: Optional[str] = None,
        context: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        self.message = message
        self.line = line
        self.column = column
        self.literal = literal
        self.context = context
        self.suggestion = suggestion
        super().__init__(str(self))

    def __str__(self) -> str:
        loc = f"line {self.line}, column {self.column}"
        msg = f"Parse error at {loc}: {self.message}"
        if self.context:
            msg += f"\n  Context: {self.context}"
        if self.suggestion:
            msg += f"\n  Suggestion: {self.suggestion}"
        return msg


class BindError(RecipeError):
    """
    Raised when the tokens of a statement do not satisfy the directive's
    usage definition (wrong variant, missing or surplus arguments).

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """

    def __init__(
        self,
        message: str,
        directive: Optional[str] = None,
        slot: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        line: Optional[int] = None,
    ):
        super().__init__(message)
        self.directive = directive
        self.slot = slot
        self.expected = expected
        self.actual = actual
        self.line = line


class CompileError(RecipeError):
    """
    Raised when a recipe cannot be turned into directive instances, e.g. a
    directive name that is neither registered nor declared loadable.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """

    def __init__(self, message: str, directive: Optional[str] = None, line: Optional[int] = None):
        super().__init__(message)
        self.directive = directive
        self.line = line


class ConfigError(RecipeError):
    """
    Raised by ``Directive.initialize`` when an optional textual setting is
    well-formed but not a recognised value.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """

    def __init__(
        self,
        message: str,
        directive: Optional[str] = None,
        option: Optional[str] = None,
        value: Any = None,
    ):
        super().__init__(message)
        self.directive = directive
        self.option = option
        self.value = value


class ExecutionError(RecipeError):
    """
    Raised while a batch flows through the directive chain, typically when a
    cell cannot be interpreted as the type a directive expects.

    This is fatal for the pipeline instance. The hosting runtime decides
    whether to fail, skip or route the batch elsewhere.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """

    def __init__(
        self,
        message: str,
        directive: Optional[str] = None,
        row: Optional[int] = None,
        column: Optional[str] = None,
        value: Any = None,
    ):
        super().__init__(message)
        self.directive = directive
        self.row = row
        self.column = column
        self.value = value


__all__ = [
    "RecipeError",
    "FormatError",
    "ParseError",
    "BindError",
    "CompileError",
    "ConfigError",
    "ExecutionError",
]
