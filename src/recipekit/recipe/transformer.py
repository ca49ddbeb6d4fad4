"""
Recipe Transformer - parse tree to token groups.

Walks the statements of a parsed recipe in order. Directive statements
become ``TokenGroup`` objects; pragmas set the recipe version and collect
the names of directives the hosting environment has to supply.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Tuple, Union

from lark import Tree, Token as LarkToken

from ..dsl.tokens import Token, TokenGroup
from ..dsl.units import ByteSize, TimeDuration, UnitValue
from ..exceptions import FormatError, ParseError


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}
_ESCAPE_PATTERN = re.compile(r"\\(.)", re.DOTALL)


# ============================================================
# SYMBOL TABLE
# ============================================================

@dataclass
class RecipeSymbols:
    """
    Directive statements and pragmas of one recipe.

    ``loadable`` keeps the declaration order of ``#pragma load-directives``
    names without duplicates.
    """
    groups: List[TokenGroup] = field(default_factory=list)
    version: Optional[str] = None
    loadable: List[str] = field(default_factory=list)

    @property
    def loadable_directives(self) -> FrozenSet[str]:
        return frozenset(self.loadable)

    def add_loadable(self, name: str) -> None:
        if name not in self.loadable:
            self.loadable.append(name)

    def directive_names(self) -> List[str]:
        return [g.name for g in self.groups]

    def __iter__(self) -> Iterator[TokenGroup]:
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)


# ============================================================
# TRANSFORMER
# ============================================================

class RecipeTransformer:
    """
    Transforms recipe parse trees into ``RecipeSymbols``.

    Literal errors (a unit literal with an unknown or negative amount) are
    raised as ``ParseError`` carrying the line, column and offending text.
    """

    def transform(self, tree: Tree, source: Optional[str] = None) -> RecipeSymbols:
        """
        Transform a parse tree into a symbol table.

        Args:
            tree: Lark parse tree from RecipeParser
            source: The recipe text the tree was parsed from (for context)

        Returns:
            RecipeSymbols with one token group per directive statement
        """
        self._source = source or ""
        self._lines = self._source.split("\n")
        symbols = RecipeSymbols()

        for child in tree.children:
            if not isinstance(child, Tree):
                continue
            if child.data == "directive":
                symbols.groups.append(self._transform_directive(child))
            elif child.data == "pragma_version":
                symbols.version = str(self._first_token(child, "VERSION"))
            elif child.data == "pragma_load":
                for token in child.children:
                    if isinstance(token, LarkToken) and token.type == "NAME":
                        symbols.add_loadable(str(token))

        return symbols

    def _transform_directive(self, node: Tree) -> TokenGroup:
        """Transform a directive node into a TokenGroup."""
        name = self._first_token(node, "NAME")
        tokens: List[Token] = [Token.directive_name(str(name))]

        for child in node.children[1:]:
            if isinstance(child, Tree):
                tokens.append(self._transform_argument(child))

        line = getattr(node.meta, "line", None) or name.line or 0
        return TokenGroup(tuple(tokens), line, self._statement_text(node))

    def _transform_argument(self, node: Tree) -> Token:
        """Dispatch on the argument kind."""
        handler = getattr(self, f"_transform_{node.data}", None)
        if handler is None:
            raise ParseError(
                f"Unsupported argument kind '{node.data}'",
                line=getattr(node.meta, "line", 1),
                column=getattr(node.meta, "column", 1),
            )
        return handler(node)

    # --------------------------------------------------------
    # Argument kinds
    # --------------------------------------------------------

    def _transform_column(self, node: Tree) -> Token:
        token = node.children[0]
        return Token.column_name(str(token)[1:], str(token))

    def _transform_column_list(self, node: Tree) -> Token:
        names = [str(t)[1:] for t in node.children]
        return Token.column_names(names, ",".join(str(t) for t in node.children))

    def _transform_text(self, node: Tree) -> Token:
        token = node.children[0]
        return Token.text(self._unquote(str(token)), str(token))

    def _transform_text_list(self, node: Tree) -> Token:
        values = [self._unquote(str(t)) for t in node.children]
        return Token.text_list(values, ",".join(str(t) for t in node.children))

    def _transform_number(self, node: Tree) -> Token:
        token = node.children[0]
        return Token.numeric(self._number(str(token)), str(token))

    def _transform_numeric_list(self, node: Tree) -> Token:
        values = [self._number(str(t)) for t in node.children]
        return Token.numeric_list(values, ",".join(str(t) for t in node.children))

    def _transform_byte_size(self, node: Tree) -> Token:
        return Token.byte_size(self._unit_value(ByteSize, node.children[0]))

    def _transform_time_duration(self, node: Tree) -> Token:
        return Token.time_duration(self._unit_value(TimeDuration, node.children[0]))

    def _transform_malformed_unit(self, node: Tree) -> Token:
        token = node.children[0]
        literal = str(token)
        unit = re.sub(r"^-?[\d.]+", "", literal)
        raise ParseError(
            f"Unknown unit '{unit}' in literal '{literal}'",
            line=token.line or 1,
            column=token.column or 1,
            literal=literal,
            context=self._get_context_line(token.line),
            suggestion=(
                "Byte sizes use B, KB, MB, GB, KiB, MiB, GiB...; "
                "durations use ms, s, m, h, d or long forms such as 'seconds'"
            ),
        )

    def _transform_word(self, node: Tree) -> Token:
        token = node.children[0]
        text = str(token)
        if text.lower() in ("true", "false"):
            return Token.boolean(text.lower() == "true", text)
        return Token.text(text, text)

    def _transform_properties(self, node: Tree) -> Token:
        values: Dict[str, Any] = {}
        for child in node.children:
            if isinstance(child, Tree) and child.data == "property":
                key, value = self._transform_property(child)
                values[key] = value
        return Token.properties(values, self._statement_text(node))

    def _transform_property(self, node: Tree) -> Tuple[str, Any]:
        key_token = node.children[0]
        key = str(key_token)
        if key_token.type == "STRING":
            key = self._unquote(key)

        value_node = node.children[1]
        token = value_node.children[0]
        if token.type == "STRING":
            value: Any = self._unquote(str(token))
        elif token.type == "NUMBER":
            value = self._number(str(token))
        elif str(token).lower() in ("true", "false"):
            value = str(token).lower() == "true"
        else:
            value = str(token)
        return key, value

    # --------------------------------------------------------
    # Helpers
    # --------------------------------------------------------

    def _unit_value(self, kind, token: LarkToken) -> UnitValue:
        """Build a ByteSize / TimeDuration, reporting failures as ParseError."""
        try:
            return kind(str(token))
        except FormatError as e:
            raise ParseError(
                str(e),
                line=token.line or 1,
                column=token.column or 1,
                literal=str(token),
                context=self._get_context_line(token.line),
            ) from e

    def _first_token(self, node: Tree, type_: str) -> LarkToken:
        for child in node.children:
            if isinstance(child, LarkToken) and child.type == type_:
                return child
        raise ParseError(
            f"Malformed '{node.data}' statement",
            line=getattr(node.meta, "line", 1),
            column=getattr(node.meta, "column", 1),
        )

    def _number(self, text: str) -> Union[int, Decimal]:
        if "." in text:
            return Decimal(text)
        return int(text)

    def _unquote(self, s: str) -> str:
        """Remove surrounding quotes and resolve backslash escapes."""
        if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
            s = s[1:-1]
        return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), s)

    def _statement_text(self, node: Tree) -> str:
        start = getattr(node.meta, "start_pos", None)
        end = getattr(node.meta, "end_pos", None)
        if start is None or end is None:
            return ""
        return self._source[start:end]

    def _get_context_line(self, line: Optional[int]) -> Optional[str]:
        if line and 1 <= line <= len(self._lines):
            return self._lines[line - 1].rstrip()
        return None
