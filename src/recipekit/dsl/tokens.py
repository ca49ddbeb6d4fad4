"""
Token model for parsed recipe statements.

Every argument position of a statement becomes a ``Token``: a variant tag
(``TokenType``), the value carried by that variant and the literal text the
value was read from. The tokens of one statement form a ``TokenGroup`` whose
first token is the directive name.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .units import ByteSize, TimeDuration, UnitValue


class TokenType(Enum):
    """Closed set of token variants."""
    DIRECTIVE_NAME = "directive_name"
    TEXT = "text"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    COLUMN_NAME = "column_name"
    COLUMN_NAME_LIST = "column_name_list"
    TEXT_LIST = "text_list"
    NUMERIC_LIST = "numeric_list"
    PROPERTIES = "properties"
    BYTE_SIZE = "byte_size"
    TIME_DURATION = "time_duration"

    def __str__(self) -> str:
        return self.name


Numeric = Union[int, Decimal]


@dataclass(frozen=True)
class Token:
    """
    One typed argument.

    Equality covers the variant and the value only; two byte-size tokens
    written as ``1000KB`` and ``1MB`` are equal.
    """
    type: TokenType
    value: Any
    literal: str = field(default="", compare=False)

    # --------------------------------------------------------
    # Variant constructors
    # --------------------------------------------------------

    @classmethod
    def directive_name(cls, name: str) -> "Token":
        return cls(TokenType.DIRECTIVE_NAME, name, name)

    @classmethod
    def text(cls, value: str, literal: Optional[str] = None) -> "Token":
        return cls(TokenType.TEXT, value, value if literal is None else literal)

    @classmethod
    def numeric(cls, value: Numeric, literal: Optional[str] = None) -> "Token":
        return cls(TokenType.NUMERIC, value, str(value) if literal is None else literal)

    @classmethod
    def boolean(cls, value: bool, literal: Optional[str] = None) -> "Token":
        return cls(TokenType.BOOLEAN, value, str(value).lower() if literal is None else literal)

    @classmethod
    def column_name(cls, name: str, literal: Optional[str] = None) -> "Token":
        return cls(TokenType.COLUMN_NAME, name, f":{name}" if literal is None else literal)

    @classmethod
    def column_names(cls, names: Sequence[str], literal: Optional[str] = None) -> "Token":
        names = tuple(names)
        if literal is None:
            literal = ",".join(f":{n}" for n in names)
        return cls(TokenType.COLUMN_NAME_LIST, names, literal)

    @classmethod
    def text_list(cls, values: Sequence[str], literal: Optional[str] = None) -> "Token":
        values = tuple(values)
        if literal is None:
            literal = ",".join(f"'{v}'" for v in values)
        return cls(TokenType.TEXT_LIST, values, literal)

    @classmethod
    def numeric_list(cls, values: Sequence[Numeric], literal: Optional[str] = None) -> "Token":
        values = tuple(values)
        if literal is None:
            literal = ",".join(str(v) for v in values)
        return cls(TokenType.NUMERIC_LIST, values, literal)

    @classmethod
    def properties(cls, values: Dict[str, Any], literal: Optional[str] = None) -> "Token":
        items: Tuple[Tuple[str, Any], ...] = tuple(values.items())
        if literal is None:
            literal = "prop:{" + ", ".join(f"{k}={v}" for k, v in items) + "}"
        return cls(TokenType.PROPERTIES, items, literal)

    @classmethod
    def byte_size(cls, value: Union[str, ByteSize]) -> "Token":
        if not isinstance(value, ByteSize):
            value = ByteSize(value)
        return cls(TokenType.BYTE_SIZE, value, value.literal)

    @classmethod
    def time_duration(cls, value: Union[str, TimeDuration]) -> "Token":
        if not isinstance(value, TimeDuration):
            value = TimeDuration(value)
        return cls(TokenType.TIME_DURATION, value, value.literal)

    # --------------------------------------------------------
    # Accessors
    # --------------------------------------------------------

    def as_dict(self) -> Dict[str, Any]:
        """Properties token value as a dict."""
        if self.type is not TokenType.PROPERTIES:
            raise TypeError(f"{self.type} token has no properties")
        return dict(self.value)

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.value, UnitValue):
            return self.value.to_dict()
        value = self.value
        if self.type is TokenType.PROPERTIES:
            value = dict(value)
        elif isinstance(value, tuple):
            value = list(value)
        if isinstance(value, Decimal):
            value = float(value)
        elif isinstance(value, list):
            value = [float(v) if isinstance(v, Decimal) else v for v in value]
        return {"type": self.type.name, "value": value, "literal": self.literal}

    def __str__(self) -> str:
        return self.literal


@dataclass(frozen=True)
class TokenGroup:
    """
    Tokens of a single directive statement, in source order.

    ``line`` is the 1-based line the statement starts on and ``source`` the
    statement text; both are kept for error messages.
    """
    tokens: Tuple[Token, ...]
    line: int = 0
    source: str = ""

    def __post_init__(self):
        if not self.tokens or self.tokens[0].type is not TokenType.DIRECTIVE_NAME:
            raise ValueError("A token group must start with a directive name token")

    @classmethod
    def of(cls, name: str, *arguments: Token, line: int = 0, source: str = "") -> "TokenGroup":
        return cls((Token.directive_name(name),) + tuple(arguments), line, source)

    @property
    def name(self) -> str:
        return self.tokens[0].value

    @property
    def arguments(self) -> Tuple[Token, ...]:
        return self.tokens[1:]

    def get(self, index: int) -> Token:
        return self.tokens[index]

    def types(self) -> List[TokenType]:
        return [t.type for t in self.tokens]

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __str__(self) -> str:
        return self.source or " ".join(t.literal for t in self.tokens)
