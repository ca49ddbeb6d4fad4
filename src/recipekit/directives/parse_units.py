"""
parse-as-size / parse-as-duration - turn text cells into typed unit values.

    parse-as-size :transfer
    parse-as-duration :latency

None cells stay None; cells that already hold the typed value are kept.
"""

from typing import ClassVar, List, Type

from ..dsl.context import ExecutorContext
from ..dsl.directive import Directive, Row
from ..dsl.tokens import TokenType
from ..dsl.units import ByteSize, TimeDuration, UnitValue
from ..dsl.usage import Arguments, UsageDefinition
from ..exceptions import ExecutionError, FormatError


class _ParseUnit(Directive):
    KIND: ClassVar[Type[UnitValue]] = UnitValue
    CATEGORIES = ("parser",)

    @classmethod
    def define(cls) -> UsageDefinition:
        return (
            UsageDefinition.builder(cls.NAME)
            .define("column", TokenType.COLUMN_NAME)
            .build()
        )

    def initialize(self, args: Arguments) -> None:
        self.column = args.value("column")

    def execute(self, rows: List[Row], context: ExecutorContext) -> List[Row]:
        for index, row in enumerate(rows):
            value = row.get(self.column)
            if value is None or isinstance(value, self.KIND):
                continue
            if not isinstance(value, str):
                raise ExecutionError(
                    f"Row {index}: column '{self.column}' holds {type(value).__name__}, "
                    f"expected text",
                    directive=self.NAME,
                    row=index,
                    column=self.column,
                    value=value,
                )
            try:
                row[self.column] = self.KIND(value)
            except FormatError as e:
                raise ExecutionError(
                    f"Row {index}: {e}",
                    directive=self.NAME,
                    row=index,
                    column=self.column,
                    value=value,
                ) from e
        return rows


class ParseAsSize(_ParseUnit):
    """Parses byte-size text such as '10MB'."""

    NAME = "parse-as-size"
    DESCRIPTION = "Parses a column as a byte size."
    KIND = ByteSize


class ParseAsDuration(_ParseUnit):
    """Parses duration text such as '1.5s'."""

    NAME = "parse-as-duration"
    DESCRIPTION = "Parses a column as a time duration."
    KIND = TimeDuration
