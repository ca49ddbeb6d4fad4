"""
Recipe Parser - Lark-based parser for directive recipes.

This module provides the parser infrastructure for turning recipe text into
a parse tree that ``RecipeTransformer`` converts into token groups.
"""

from pathlib import Path
from typing import List, Optional, Union
from dataclasses import dataclass, field

from lark import Lark, Tree, Token
from lark.exceptions import (
    UnexpectedInput,
    UnexpectedToken,
    UnexpectedCharacters,
    UnexpectedEOF,
)

from ..exceptions import ParseError
from ..logging_config import configure_logger_for_debug_trace

logger = configure_logger_for_debug_trace(__name__)


# Friendly names for grammar terminals used in error suggestions.
_TERMINAL_NAMES = {
    "NAME": "directive or word",
    "COLUMN": ":column",
    "STRING": "'text'",
    "NUMBER": "number",
    "BYTE_SIZE": "byte size (e.g. 10MB)",
    "TIME_DURATION": "duration (e.g. 500ms)",
    "VERSION": "version number",
    "PROP_OPEN": "prop:{",
    "COMMA": "','",
    "EQUAL": "'='",
    "RBRACE": "'}'",
    "_SEP": "newline or ';'",
}


# ============================================================
# RESULT TYPE
# ============================================================

@dataclass
class ParseResult:
    """Result of parsing recipe text."""
    success: bool
    tree: Optional[Tree] = None
    errors: List[ParseError] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def __bool__(self) -> bool:
        return self.success


# ============================================================
# PARSER
# ============================================================

class RecipeParser:
    """
    Parser for directive recipes.

    Usage:
        parser = RecipeParser()
        result = parser.parse(recipe_text)
        if result.success:
            tree = result.tree
            # Process tree...
        else:
            for error in result.errors:
                print(error)
    """

    _instance: Optional["RecipeParser"] = None
    _parser: Optional[Lark] = None

    def __new__(cls) -> "RecipeParser":
        """Singleton pattern for parser reuse."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize the parser with the grammar file."""
        if RecipeParser._parser is not None:
            return

        grammar_path = Path(__file__).parent / "grammar.lark"

        if not grammar_path.exists():
            raise FileNotFoundError(
                f"Grammar file not found: {grammar_path}\n"
                "Ensure grammar.lark is in the same directory as parser.py"
            )

        with open(grammar_path, "r", encoding="utf-8") as f:
            grammar = f.read()

        RecipeParser._parser = Lark(
            grammar,
            start="start",
            parser="lalr",
            lexer="contextual",
            propagate_positions=True,
            maybe_placeholders=False,
        )
        logger.debug("Recipe grammar loaded from %s", grammar_path)

    @property
    def parser(self) -> Lark:
        """Get the Lark parser instance."""
        if RecipeParser._parser is None:
            raise RuntimeError("Parser not initialized")
        return RecipeParser._parser

    @classmethod
    def reset(cls) -> None:
        """Reset the parser cache to force grammar reload on next use."""
        cls._parser = None
        cls._instance = None

    def parse(self, source: str) -> ParseResult:
        """
        Parse recipe text into a tree.

        Blank and comment-only recipes parse successfully into an empty tree.

        Args:
            source: Recipe text

        Returns:
            ParseResult containing the tree or errors
        """
        if source is None:
            source = ""

        try:
            tree = self.parser.parse(source)
            return ParseResult(success=True, tree=tree, source=source)

        except UnexpectedToken as e:
            error = self._handle_unexpected_token(e, source)
            return ParseResult(success=False, errors=[error], source=source)

        except UnexpectedCharacters as e:
            error = self._handle_unexpected_characters(e, source)
            return ParseResult(success=False, errors=[error], source=source)

        except UnexpectedEOF as e:
            error = self._handle_unexpected_eof(e, source)
            return ParseResult(success=False, errors=[error], source=source)

        except UnexpectedInput as e:
            error = self._handle_unexpected_input(e, source)
            return ParseResult(success=False, errors=[error], source=source)

    def parse_file(self, path: Union[str, Path]) -> ParseResult:
        """
        Parse a recipe file.

        Args:
            path: Path to the recipe file

        Returns:
            ParseResult containing the tree or errors
        """
        path = Path(path)

        if not path.exists():
            return ParseResult(
                success=False,
                errors=[ParseError(f"File not found: {path}")],
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                source = f.read()
        except OSError as e:
            return ParseResult(
                success=False,
                errors=[ParseError(f"Error reading file: {e}")],
            )
        return self.parse(source)

    # ============================================================
    # ERROR HANDLERS
    # ============================================================

    def _handle_unexpected_token(
        self, e: UnexpectedToken, source: str
    ) -> ParseError:
        """Handle unexpected token errors with helpful messages."""
        token = e.token
        if token is not None and token.type == "$END":
            return self._handle_unexpected_eof(e, source)

        line = e.line if e.line and e.line > 0 else 1
        column = e.column if e.column and e.column > 0 else 1
        token_value = str(token) if token is not None else "unknown"

        message = f"Unexpected token '{token_value}'"
        expected = self._describe_expected(e.expected)
        suggestion = f"Expected one of: {expected}" if expected else None

        return ParseError(
            message=message,
            line=line,
            column=column,
            literal=token_value,
            context=self._get_context_line(source, line),
            suggestion=suggestion,
        )

    def _handle_unexpected_characters(
        self, e: UnexpectedCharacters, source: str
    ) -> ParseError:
        """Handle unexpected character errors."""
        line = e.line or 1
        column = e.column or 1

        char = getattr(e, "char", None) or "unknown"

        message = f"Unexpected character '{char}'"
        context = self._get_context_line(source, line)

        return ParseError(
            message=message,
            line=line,
            column=column,
            literal=char,
            context=context,
            suggestion=self._suggest_for_char(char),
        )

    def _handle_unexpected_eof(
        self, e: UnexpectedInput, source: str
    ) -> ParseError:
        """Handle unexpected end-of-input errors."""
        lines = source.split("\n")
        line = len(lines)
        column = len(lines[-1]) + 1 if lines else 1

        expected = list(getattr(e, "expected", None) or [])
        suggestion = None
        if "RBRACE" in expected:
            suggestion = "Missing closing brace '}' in prop:{...}"
        elif expected:
            suggestion = f"Expected: {self._describe_expected(expected)}"

        return ParseError(
            message="Unexpected end of recipe",
            line=line,
            column=column,
            context=self._get_context_line(source, line),
            suggestion=suggestion,
        )

    def _handle_unexpected_input(
        self, e: UnexpectedInput, source: str
    ) -> ParseError:
        """Handle generic unexpected input errors."""
        line = getattr(e, "line", 1) or 1
        column = getattr(e, "column", 1) or 1

        return ParseError(
            message=str(e),
            line=line,
            column=column,
            context=self._get_context_line(source, line),
        )

    # ============================================================
    # HELPERS
    # ============================================================

    def _get_context_line(self, source: str, line: int) -> Optional[str]:
        """Get the source line for context."""
        lines = source.split("\n")
        if 1 <= line <= len(lines):
            return lines[line - 1].rstrip()
        return None

    def _describe_expected(self, expected) -> str:
        names = sorted(_TERMINAL_NAMES.get(t, t) for t in (expected or ()))
        text = ", ".join(names[:5])
        if len(names) > 5:
            text += f" (and {len(names) - 5} more)"
        return text

    def _suggest_for_char(self, char: str) -> Optional[str]:
        """Suggest fixes for common character errors."""
        if char in ("'", '"'):
            return "Check for unclosed string"
        if char == ":":
            return "Column references are written ':name' with no space after ':'"
        if char in "{}":
            return "Properties are written prop:{key=value, ...}"
        if char == "#":
            return "Only '#pragma version' and '#pragma load-directives' are recognised"
        if char == "$":
            return "Macros '${name}' must be expanded before parsing"
        if not char.isalnum():
            return f"Quote single punctuation arguments, e.g. '{char}'"
        return None


# ============================================================
# UTILITY FUNCTIONS
# ============================================================

def parse_recipe(source: str) -> ParseResult:
    """
    Convenience function to parse recipe text.

    Args:
        source: Recipe text

    Returns:
        ParseResult containing the tree or errors
    """
    parser = RecipeParser()
    return parser.parse(source)


def pretty_print_tree(tree: Tree, indent: int = 0) -> str:
    """
    Pretty print a parse tree for debugging.

    Args:
        tree: Lark parse tree
        indent: Current indentation level

    Returns:
        Formatted string representation of the tree
    """
    lines = []
    prefix = "  " * indent

    if isinstance(tree, Tree):
        lines.append(f"{prefix}{tree.data}")
        for child in tree.children:
            lines.append(pretty_print_tree(child, indent + 1))
    elif isinstance(tree, Token):
        lines.append(f"{prefix}{tree.type}: {tree.value!r}")
    else:
        lines.append(f"{prefix}{tree!r}")

    return "\n".join(lines)
