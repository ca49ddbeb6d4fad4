"""
Typed literal values - byte sizes and time durations with units.

A literal such as ``10MB`` or ``1.5s`` is parsed once into an exact
``Decimal`` numeric part and a canonical integer amount (bytes for
``ByteSize``, milliseconds for ``TimeDuration``). All arithmetic, equality
and hashing work on the canonical amount, so ``ByteSize("1000KB") ==
ByteSize("1MB")``.

The canonical amount is always ``round(numeric_value * factor)``; the number
is never truncated before scaling, so ``TimeDuration("1.5s").milliseconds``
is 1500.
"""

import json
import re
from abc import ABC, abstractmethod
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP, localcontext
from functools import total_ordering
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..exceptions import FormatError
from .catpy import Result, capture


# Precision used for every canonical computation. YiB is 25 digits on its own.
_PRECISION = 60

_LITERAL_PATTERN = re.compile(r"^([+-]?\d+(?:\.\d+)?)\s*([A-Za-zµ]+)$")

Number = Union[int, float, Decimal]


def _decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


# ============================================================
# UNIT TABLES
# ============================================================

_KB = Decimal(1000)
_KIB = Decimal(1024)

BYTE_UNITS: Dict[str, Decimal] = {
    "B": Decimal(1),
    # Decimal units (powers of 1000)
    "KB": _KB,
    "MB": _KB ** 2,
    "GB": _KB ** 3,
    "TB": _KB ** 4,
    "PB": _KB ** 5,
    "EB": _KB ** 6,
    "ZB": _KB ** 7,
    "YB": _KB ** 8,
    # Binary units (powers of 1024)
    "KiB": _KIB,
    "MiB": _KIB ** 2,
    "GiB": _KIB ** 3,
    "TiB": _KIB ** 4,
    "PiB": _KIB ** 5,
    "EiB": _KIB ** 6,
    "ZiB": _KIB ** 7,
    "YiB": _KIB ** 8,
    # Sub-byte units
    "bit": Decimal("0.125"),
    "bits": Decimal("0.125"),
    "nibble": Decimal("0.5"),
    "nibbles": Decimal("0.5"),
}

_MS = Decimal(1)
_SECOND = Decimal(1000)
_MINUTE = _SECOND * 60
_HOUR = _MINUTE * 60
_DAY = _HOUR * 24
_WEEK = _DAY * 7
# Average lengths, not calendar exact: 365.25 / 12 days and 365.25 days.
_MONTH = Decimal("30.436875") * _DAY
_YEAR = Decimal("365.25") * _DAY

# Short symbols are matched case-sensitively.
TIME_UNITS: Dict[str, Decimal] = {
    "ns": Decimal("0.000001"),
    "us": Decimal("0.001"),
    "µs": Decimal("0.001"),
    "ms": _MS,
    "s": _SECOND,
    "sec": _SECOND,
    "m": _MINUTE,
    "min": _MINUTE,
    "h": _HOUR,
    "d": _DAY,
    "w": _WEEK,
    "y": _YEAR,
}

# Long forms are matched case-insensitively (keys are lower case).
TIME_LONG_UNITS: Dict[str, Decimal] = {
    "nanosecond": TIME_UNITS["ns"],
    "nanoseconds": TIME_UNITS["ns"],
    "microsecond": TIME_UNITS["us"],
    "microseconds": TIME_UNITS["us"],
    "millisecond": _MS,
    "milliseconds": _MS,
    "second": _SECOND,
    "seconds": _SECOND,
    "minute": _MINUTE,
    "minutes": _MINUTE,
    "hour": _HOUR,
    "hours": _HOUR,
    "day": _DAY,
    "days": _DAY,
    "week": _WEEK,
    "weeks": _WEEK,
    "month": _MONTH,
    "months": _MONTH,
    "year": _YEAR,
    "years": _YEAR,
}


# ============================================================
# BASE TYPE
# ============================================================

@total_ordering
class UnitValue(ABC):
    """
    Immutable number-with-unit whose identity is its canonical amount.

    Subclasses provide the unit table, the canonical unit name and the ladder
    of units used when a value is built from a canonical amount.
    """

    TYPE_NAME: str = ""
    KIND: str = "value"
    CANONICAL_UNIT: str = ""
    CANONICAL_FIELD: str = "canonical"
    DISPLAY_UNITS: Tuple[str, ...] = ()
    CONVERSIONS: Mapping[str, str] = {}

    __slots__ = ("_literal", "_numeric_value", "_unit", "_canonical")

    def __init__(self, text: str):
        if text is None:
            raise FormatError(f"{self.KIND.capitalize()} string cannot be None")
        literal = str(text).strip()
        if not literal:
            raise FormatError(f"{self.KIND.capitalize()} string cannot be empty", literal)

        match = _LITERAL_PATTERN.match(literal)
        if not match:
            raise FormatError(
                f"Invalid {self.KIND} format: '{literal}'. "
                f"Expected a number followed by a unit (e.g. {self._example()}).",
                literal,
            )

        numeric_value = Decimal(match.group(1))
        unit = match.group(2)
        if numeric_value < 0:
            raise FormatError(f"{self.KIND.capitalize()} cannot be negative: '{literal}'", literal)

        factor = self.lookup(unit)
        if factor is None:
            raise FormatError(
                f"Unknown {self.KIND} unit '{unit}' in '{literal}'. "
                f"Valid units include: {', '.join(self.unit_names())}",
                literal,
            )

        self._literal = literal
        self._numeric_value = numeric_value
        self._unit = unit
        self._canonical = self._scale(numeric_value, factor)

    # --------------------------------------------------------
    # Construction helpers
    # --------------------------------------------------------

    @classmethod
    def try_parse(cls, text: str) -> Result["UnitValue", FormatError]:
        """Parse ``text``, returning Ok(value) or Err(FormatError)."""
        return capture(cls, text, errors=(FormatError,))

    @classmethod
    def from_canonical(cls, canonical: int) -> "UnitValue":
        """
        Build a value from a canonical amount.

        The largest display unit that represents the amount exactly is chosen,
        so the generated literal parses back to the same canonical amount.
        """
        canonical = int(canonical)
        if canonical < 0:
            raise FormatError(f"{cls.KIND.capitalize()} cannot be negative: {canonical}")

        amount = Decimal(canonical)
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            for unit in cls.DISPLAY_UNITS:
                factor = cls.lookup(unit)
                if amount < factor and unit != cls.CANONICAL_UNIT:
                    continue
                quotient = amount / factor
                if quotient * factor == amount:
                    text = format(quotient.normalize(), "f")
                    return cls(f"{text}{unit}")
        return cls(f"{canonical}{cls.CANONICAL_UNIT}")

    @staticmethod
    def _scale(numeric_value: Decimal, factor: Decimal) -> int:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            return int((numeric_value * factor).to_integral_value(rounding=ROUND_HALF_UP))

    @classmethod
    def _example(cls) -> str:
        return ", ".join(f"'{e}'" for e in cls.DISPLAY_UNITS[-3:])

    # --------------------------------------------------------
    # Unit tables
    # --------------------------------------------------------

    @classmethod
    @abstractmethod
    def lookup(cls, unit: str) -> Optional[Decimal]:
        """Return the canonical factor of ``unit`` or None if unknown."""

    @classmethod
    @abstractmethod
    def unit_names(cls) -> Tuple[str, ...]:
        pass

    @classmethod
    def resolve_unit(cls, unit: str, case_insensitive: bool = False) -> Optional[str]:
        """
        Return the table spelling of ``unit``.

        With ``case_insensitive`` an exact match still wins; otherwise the
        first table entry equal ignoring case is returned.
        """
        if unit is None:
            return None
        unit = unit.strip()
        if cls.lookup(unit) is not None:
            return unit
        if case_insensitive:
            lowered = unit.lower()
            for name in cls.unit_names():
                if name.lower() == lowered:
                    return name
        return None

    # --------------------------------------------------------
    # Accessors
    # --------------------------------------------------------

    @property
    def value(self) -> str:
        """The literal text this value was created from."""
        return self._literal

    @property
    def literal(self) -> str:
        return self._literal

    @property
    def numeric_value(self) -> Decimal:
        return self._numeric_value

    @property
    def unit(self) -> str:
        return self._unit

    @property
    def canonical(self) -> int:
        return self._canonical

    @classmethod
    def convert_canonical(cls, canonical: Number, unit: str, divisor: Number = 1) -> Decimal:
        """Express a canonical amount (optionally divided by ``divisor``) in ``unit``."""
        factor = cls.lookup(unit)
        if factor is None:
            raise FormatError(f"Unknown {cls.KIND} unit '{unit}'", unit)
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            return _decimal(canonical) / factor / _decimal(divisor)

    def to_decimal(self, unit: str) -> Decimal:
        """Exact conversion of the canonical amount into ``unit``."""
        return self.convert_canonical(self._canonical, unit)

    def to(self, unit: str) -> float:
        """Convert the canonical amount into ``unit``."""
        return float(self.to_decimal(unit))

    def conversions(self) -> Dict[str, float]:
        return {name: self.to(unit) for name, unit in self.CONVERSIONS.items()}

    # --------------------------------------------------------
    # Arithmetic
    # --------------------------------------------------------

    def add(self, other: "UnitValue") -> "UnitValue":
        if other is None:
            raise FormatError(f"Cannot add None to a {self.KIND}")
        if not isinstance(other, type(self)):
            raise TypeError(
                f"Cannot add {type(other).__name__} to {type(self).__name__}"
            )
        return type(self).from_canonical(self._canonical + other._canonical)

    def multiply(self, factor: Number) -> "UnitValue":
        factor = _decimal(factor)
        if factor < 0:
            raise FormatError("Multiplication factor cannot be negative")
        return type(self).from_canonical(self._scale(Decimal(self._canonical), factor))

    def __add__(self, other: Any) -> "UnitValue":
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.add(other)

    def __mul__(self, factor: Any) -> "UnitValue":
        if not isinstance(factor, (int, float, Decimal)) or isinstance(factor, bool):
            return NotImplemented
        return self.multiply(factor)

    __rmul__ = __mul__

    # --------------------------------------------------------
    # Identity
    # --------------------------------------------------------

    def __eq__(self, other: Any) -> bool:
        if self is other:
            return True
        if type(other) is not type(self):
            return NotImplemented
        return self._canonical == other._canonical

    def __lt__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._canonical < other._canonical

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._canonical))

    def __str__(self) -> str:
        return self._literal

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._literal!r})"

    # --------------------------------------------------------
    # Serialization
    # --------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.TYPE_NAME,
            "value": self._literal,
            self.CANONICAL_FIELD: self._canonical,
            "numericValue": float(self._numeric_value),
            "unit": self._unit,
        }
        data.update(self.conversions())
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


# ============================================================
# BYTE SIZE
# ============================================================

class ByteSize(UnitValue):
    """
    A data size such as ``10MB``, ``1.5GiB`` or ``512B``.

    Decimal units are powers of 1000, binary (``KiB`` ...) powers of 1024.
    Unit symbols are case sensitive.
    """

    TYPE_NAME = "BYTE_SIZE"
    KIND = "byte size"
    CANONICAL_UNIT = "B"
    CANONICAL_FIELD = "bytes"
    DISPLAY_UNITS = ("YB", "ZB", "EB", "PB", "TB", "GB", "MB", "KB", "B")
    CONVERSIONS = {
        "kilobytes": "KB",
        "megabytes": "MB",
        "gigabytes": "GB",
        "terabytes": "TB",
        "petabytes": "PB",
        "kibibytes": "KiB",
        "mebibytes": "MiB",
        "gibibytes": "GiB",
        "tebibytes": "TiB",
        "pebibytes": "PiB",
    }

    __slots__ = ()

    @classmethod
    def lookup(cls, unit: str) -> Optional[Decimal]:
        return BYTE_UNITS.get(unit)

    @classmethod
    def unit_names(cls) -> Tuple[str, ...]:
        return tuple(BYTE_UNITS)

    @property
    def bytes(self) -> int:
        return self._canonical

    @property
    def kilobytes(self) -> float:
        return self.to("KB")

    @property
    def megabytes(self) -> float:
        return self.to("MB")

    @property
    def gigabytes(self) -> float:
        return self.to("GB")

    @property
    def kibibytes(self) -> float:
        return self.to("KiB")

    @property
    def mebibytes(self) -> float:
        return self.to("MiB")

    @property
    def gibibytes(self) -> float:
        return self.to("GiB")


# ============================================================
# TIME DURATION
# ============================================================

class TimeDuration(UnitValue):
    """
    A duration such as ``500ms``, ``1.5s``, ``2h`` or ``3 Days``.

    Short symbols (``ms``, ``s``, ``m`` ...) are case sensitive, long forms
    (``second``, ``Minutes`` ...) are not. Months and years use average
    lengths (30.436875 and 365.25 days).
    """

    TYPE_NAME = "TIME_DURATION"
    KIND = "time duration"
    CANONICAL_UNIT = "ms"
    CANONICAL_FIELD = "milliseconds"
    DISPLAY_UNITS = ("y", "month", "w", "d", "h", "m", "s", "ms")
    CONVERSIONS = {
        "seconds": "s",
        "minutes": "m",
        "hours": "h",
        "days": "d",
        "weeks": "w",
        "months": "month",
        "years": "y",
    }

    __slots__ = ()

    @classmethod
    def lookup(cls, unit: str) -> Optional[Decimal]:
        if unit is None:
            return None
        factor = TIME_UNITS.get(unit)
        if factor is None:
            factor = TIME_LONG_UNITS.get(unit.lower())
        return factor

    @classmethod
    def unit_names(cls) -> Tuple[str, ...]:
        return tuple(TIME_UNITS) + tuple(TIME_LONG_UNITS)

    @property
    def milliseconds(self) -> int:
        return self._canonical

    @property
    def seconds(self) -> float:
        return self.to("s")

    @property
    def minutes(self) -> float:
        return self.to("m")

    @property
    def hours(self) -> float:
        return self.to("h")

    @property
    def days(self) -> float:
        return self.to("d")

    @property
    def weeks(self) -> float:
        return self.to("w")

    @property
    def months(self) -> float:
        return self.to("month")

    @property
    def years(self) -> float:
        return self.to("y")

    def to_timedelta(self) -> timedelta:
        return timedelta(milliseconds=self._canonical)
