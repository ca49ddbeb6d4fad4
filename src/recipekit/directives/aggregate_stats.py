"""
aggregate-stats - accumulate byte sizes and durations across batches.

Usage:
    aggregate-stats :size_column :time_column size_target time_target [size_unit] [time_unit] [aggregation_type]

Example:
    aggregate-stats :data_transfer_size :response_time total_size_mb total_time_sec 'MB' 's' 'TOTAL'

Every batch adds the canonical amounts (bytes, milliseconds) of its rows to
GLOBAL store entries. On the last batch the totals are converted to the
output units and a single summary row replaces the batch.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Type

from ..dsl.context import ExecutorContext
from ..dsl.directive import Directive, Row
from ..dsl.store import TransientStore, TransientVariableScope
from ..dsl.tokens import Token, TokenType
from ..dsl.units import ByteSize, TimeDuration, UnitValue
from ..dsl.usage import Arguments, UsageDefinition
from ..exceptions import ConfigError, ExecutionError, FormatError
from ..logging_config import configure_logger_for_debug_trace

logger = configure_logger_for_debug_trace(__name__)

# Store keys for transient variables
TOTAL_SIZE_BYTES = "aggregate-stats.total-size-bytes"
TOTAL_TIME_MS = "aggregate-stats.total-time-ms"
ROW_COUNT = "aggregate-stats.row-count"

DEFAULT_SIZE_UNIT = "MB"
DEFAULT_TIME_UNIT = "s"


class AggregationType(Enum):
    TOTAL = "TOTAL"
    AVERAGE = "AVERAGE"


class AggregateStats(Directive):
    """
    Aggregates byte sizes and time durations from two columns.

    ::: This is-in-layer Directive-Layer.
    ::: This is a directive.
    ::: This is stateful.
    """

    NAME = "aggregate-stats"
    DESCRIPTION = "Aggregates byte sizes and time durations from specified columns."
    CATEGORIES = ("aggregator",)

    def __init__(self):
        self.size_column: Optional[str] = None
        self.time_column: Optional[str] = None
        self.size_target: Optional[str] = None
        self.time_target: Optional[str] = None
        self.size_unit = DEFAULT_SIZE_UNIT
        self.time_unit = DEFAULT_TIME_UNIT
        self.aggregation_type = AggregationType.TOTAL

    @classmethod
    def define(cls) -> UsageDefinition:
        return (
            UsageDefinition.builder(cls.NAME)
            .define("size-column", TokenType.COLUMN_NAME)
            .define("time-column", TokenType.COLUMN_NAME)
            .define("size-target", TokenType.COLUMN_NAME, TokenType.TEXT)
            .define("time-target", TokenType.COLUMN_NAME, TokenType.TEXT)
            .define("size-unit", TokenType.TEXT, default=Token.text(DEFAULT_SIZE_UNIT))
            .define("time-unit", TokenType.TEXT, default=Token.text(DEFAULT_TIME_UNIT))
            .define("aggregation-type", TokenType.TEXT, default=Token.text(AggregationType.TOTAL.value))
            .build()
        )

    def initialize(self, args: Arguments) -> None:
        self.size_column = args.value("size-column")
        self.time_column = args.value("time-column")
        self.size_target = args.value("size-target")
        self.time_target = args.value("time-target")

        self.size_unit = self._resolve_unit(ByteSize, "size-unit", args.value("size-unit"))
        self.time_unit = self._resolve_unit(TimeDuration, "time-unit", args.value("time-unit"))

        mode = str(args.value("aggregation-type")).strip().upper()
        try:
            self.aggregation_type = AggregationType(mode)
        except ValueError:
            supported = ", ".join(t.value for t in AggregationType)
            raise ConfigError(
                f"Invalid aggregation type '{mode}'. Supported types are: {supported}",
                directive=self.NAME,
                option="aggregation-type",
                value=mode,
            ) from None

    def _resolve_unit(self, kind: Type[UnitValue], option: str, unit: str) -> str:
        resolved = kind.resolve_unit(str(unit), case_insensitive=True)
        if resolved is None:
            raise ConfigError(
                f"Unknown {kind.KIND} unit '{unit}' for {option}. "
                f"Valid units include: {', '.join(kind.unit_names())}",
                directive=self.NAME,
                option=option,
                value=unit,
            )
        return resolved

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, rows: List[Row], context: ExecutorContext) -> List[Row]:
        store = context.store
        for index, row in enumerate(rows):
            self._accumulate(index, row, store)

        if context.is_last:
            return [self._summary(store)]

        # Not the boundary: rows continue unchanged
        return rows

    def _accumulate(self, index: int, row: Row, store: TransientStore) -> None:
        size = self._canonical(ByteSize, index, self.size_column, row.get(self.size_column))
        if size is not None:
            store.increment(TransientVariableScope.GLOBAL, TOTAL_SIZE_BYTES, size)

        duration = self._canonical(TimeDuration, index, self.time_column, row.get(self.time_column))
        if duration is not None:
            store.increment(TransientVariableScope.GLOBAL, TOTAL_TIME_MS, duration)

        store.increment(TransientVariableScope.GLOBAL, ROW_COUNT, 1)

    def _canonical(self, kind: Type[UnitValue], index: int, column: str, value: Any) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, kind):
            return value.canonical
        if isinstance(value, str):
            try:
                return kind(value).canonical
            except FormatError as e:
                raise ExecutionError(
                    f"Row {index}: column '{column}' is not a valid {kind.KIND}: {e}",
                    directive=self.NAME,
                    row=index,
                    column=column,
                    value=value,
                ) from e
        raise ExecutionError(
            f"Row {index}: column '{column}' is not a valid {kind.KIND}. "
            f"Found type: {type(value).__name__}",
            directive=self.NAME,
            row=index,
            column=column,
            value=value,
        )

    def _summary(self, store: TransientStore) -> Row:
        total_bytes = store.get(TOTAL_SIZE_BYTES, 0, TransientVariableScope.GLOBAL)
        total_ms = store.get(TOTAL_TIME_MS, 0, TransientVariableScope.GLOBAL)
        count = store.get(ROW_COUNT, 0, TransientVariableScope.GLOBAL)

        divisor = count if self.aggregation_type is AggregationType.AVERAGE and count > 0 else 1
        size: Decimal = ByteSize.convert_canonical(total_bytes, self.size_unit, divisor)
        duration: Decimal = TimeDuration.convert_canonical(total_ms, self.time_unit, divisor)

        logger.debug(
            f"{self.NAME}: {count} row(s), {total_bytes} B, {total_ms} ms -> "
            f"{size} {self.size_unit}, {duration} {self.time_unit} ({self.aggregation_type.value})"
        )
        return {self.size_target: float(size), self.time_target: float(duration)}
