"""
Column directives: rename, drop, keep.
"""

from typing import List, Tuple

from ..dsl.context import ExecutorContext
from ..dsl.directive import Directive, Row
from ..dsl.tokens import TokenType
from ..dsl.usage import Arguments, UsageDefinition
from ..exceptions import ExecutionError


def _column_names(args: Arguments, slot: str) -> Tuple[str, ...]:
    """A column slot may hold one name or a list of names."""
    token = args.token(slot)
    if token.type is TokenType.COLUMN_NAME_LIST:
        return tuple(token.value)
    return (token.value,)


class Rename(Directive):
    """Renames a column; the target must not already exist."""

    NAME = "rename"
    DESCRIPTION = "Renames an existing column."
    CATEGORIES = ("columns",)

    @classmethod
    def define(cls) -> UsageDefinition:
        return (
            UsageDefinition.builder(cls.NAME)
            .define("source", TokenType.COLUMN_NAME)
            .define("target", TokenType.COLUMN_NAME)
            .build()
        )

    def initialize(self, args: Arguments) -> None:
        self.source = args.value("source")
        self.target = args.value("target")

    def execute(self, rows: List[Row], context: ExecutorContext) -> List[Row]:
        if self.source == self.target:
            return rows
        result = []
        for index, row in enumerate(rows):
            if self.target in row:
                raise ExecutionError(
                    f"Row {index}: cannot rename '{self.source}' to '{self.target}', "
                    f"column '{self.target}' already exists",
                    directive=self.NAME,
                    row=index,
                    column=self.target,
                )
            # Preserve column order
            result.append({
                (self.target if key == self.source else key): value
                for key, value in row.items()
            })
        return result


class Drop(Directive):
    """Removes the listed columns where present."""

    NAME = "drop"
    DESCRIPTION = "Drops one or more columns."
    CATEGORIES = ("columns",)

    @classmethod
    def define(cls) -> UsageDefinition:
        return (
            UsageDefinition.builder(cls.NAME)
            .define("columns", TokenType.COLUMN_NAME, TokenType.COLUMN_NAME_LIST)
            .build()
        )

    def initialize(self, args: Arguments) -> None:
        self.columns = frozenset(_column_names(args, "columns"))

    def execute(self, rows: List[Row], context: ExecutorContext) -> List[Row]:
        return [
            {key: value for key, value in row.items() if key not in self.columns}
            for row in rows
        ]


class Keep(Directive):
    """Keeps only the listed columns, in the listed order."""

    NAME = "keep"
    DESCRIPTION = "Keeps only the listed columns."
    CATEGORIES = ("columns",)

    @classmethod
    def define(cls) -> UsageDefinition:
        return (
            UsageDefinition.builder(cls.NAME)
            .define("columns", TokenType.COLUMN_NAME, TokenType.COLUMN_NAME_LIST)
            .build()
        )

    def initialize(self, args: Arguments) -> None:
        self.columns = _column_names(args, "columns")

    def execute(self, rows: List[Row], context: ExecutorContext) -> List[Row]:
        return [
            {name: row[name] for name in self.columns if name in row}
            for row in rows
        ]
