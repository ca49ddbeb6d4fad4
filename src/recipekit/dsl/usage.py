"""
Usage definitions and argument binding.

A directive declares its argument signature once as a ``UsageDefinition``:
an ordered list of named slots, each accepting one or more token variants,
optionally with a default. ``bind`` matches the argument tokens of a
``TokenGroup`` positionally against that signature and yields ``Arguments``.
Binding is purely structural; it never looks at row data.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..exceptions import BindError
from .catpy import Result, capture
from .tokens import Token, TokenGroup, TokenType


@dataclass(frozen=True)
class UsageSlot:
    """One named argument position."""
    name: str
    accepts: Tuple[TokenType, ...]
    optional: bool = False
    default: Optional[Token] = None

    def accepts_token(self, token: Token) -> bool:
        return token.type in self.accepts

    def describe(self) -> str:
        return "|".join(t.name for t in self.accepts)

    def __str__(self) -> str:
        text = f"<{self.name}:{self.describe()}>"
        return f"[{text}]" if self.optional else text


@dataclass(frozen=True)
class UsageDefinition:
    """Immutable argument signature of a directive."""
    directive: str
    slots: Tuple[UsageSlot, ...] = ()

    @classmethod
    def builder(cls, directive: str) -> "UsageDefinitionBuilder":
        return UsageDefinitionBuilder(directive)

    @property
    def required_count(self) -> int:
        return sum(1 for s in self.slots if not s.optional)

    def slot(self, name: str) -> Optional[UsageSlot]:
        for slot in self.slots:
            if slot.name == name:
                return slot
        return None

    def names(self) -> List[str]:
        return [s.name for s in self.slots]

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self) -> Iterator[UsageSlot]:
        return iter(self.slots)

    def __str__(self) -> str:
        return " ".join([self.directive] + [str(s) for s in self.slots])


class UsageDefinitionBuilder:
    """
    Collects slots for a ``UsageDefinition``.

    Usage:
        usage = (UsageDefinition.builder("rename")
                 .define("source", TokenType.COLUMN_NAME)
                 .define("target", TokenType.COLUMN_NAME)
                 .build())
    """

    def __init__(self, directive: str):
        self._directive = directive
        self._slots: List[UsageSlot] = []

    def define(
        self,
        name: str,
        *accepts: TokenType,
        optional: bool = False,
        default: Optional[Token] = None,
    ) -> "UsageDefinitionBuilder":
        if not accepts:
            raise ValueError(f"Slot '{name}' must accept at least one token type")
        if any(s.name == name for s in self._slots):
            raise ValueError(f"Slot '{name}' is already defined for '{self._directive}'")
        if default is not None:
            optional = True
            if default.type not in accepts:
                raise ValueError(
                    f"Default for slot '{name}' is {default.type}, expected "
                    f"{'|'.join(t.name for t in accepts)}"
                )
        if not optional and self._slots and self._slots[-1].optional:
            raise ValueError(
                f"Required slot '{name}' cannot follow an optional slot in '{self._directive}'"
            )
        self._slots.append(UsageSlot(name, tuple(accepts), optional, default))
        return self

    def build(self) -> UsageDefinition:
        return UsageDefinition(self._directive, tuple(self._slots))


@dataclass(frozen=True)
class Arguments(Mapping[str, Token]):
    """Slot name to bound token."""
    directive: str
    tokens: Dict[str, Token] = field(default_factory=dict)

    def contains(self, name: str) -> bool:
        return name in self.tokens

    def token(self, name: str) -> Token:
        try:
            return self.tokens[name]
        except KeyError:
            raise KeyError(f"Argument '{name}' was not bound for '{self.directive}'") from None

    def value(self, name: str, default: Any = None) -> Any:
        token = self.tokens.get(name)
        return default if token is None else token.value

    def to_dict(self) -> Dict[str, Any]:
        return {name: token.to_dict() for name, token in self.tokens.items()}

    def __getitem__(self, name: str) -> Token:
        return self.token(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)


# ============================================================
# BINDING
# ============================================================

def bind(group: TokenGroup, usage: UsageDefinition) -> Arguments:
    """
    Bind the argument tokens of ``group`` to the slots of ``usage``.

    Raises:
        BindError: on a variant mismatch, a missing required argument, or
            surplus trailing arguments.
    """
    arguments = list(group.arguments)
    bound: Dict[str, Token] = {}
    name = group.name

    for index, slot in enumerate(usage.slots):
        if index >= len(arguments):
            if not slot.optional:
                raise BindError(
                    f"Directive '{name}' is missing required argument '{slot.name}' "
                    f"({slot.describe()}); usage: {usage}",
                    directive=name,
                    slot=slot.name,
                    expected=slot.describe(),
                    actual=None,
                    line=group.line,
                )
            if slot.default is not None:
                bound[slot.name] = slot.default
            continue

        token = arguments[index]
        if not slot.accepts_token(token):
            raise BindError(
                f"Directive '{name}' argument '{slot.name}' expects {slot.describe()} "
                f"but found {token.type.name} '{token.literal}'; usage: {usage}",
                directive=name,
                slot=slot.name,
                expected=slot.describe(),
                actual=token.type.name,
                line=group.line,
            )
        bound[slot.name] = token

    if len(arguments) > len(usage.slots):
        extra = arguments[len(usage.slots)]
        raise BindError(
            f"Directive '{name}' accepts at most {len(usage.slots)} argument(s) but "
            f"{len(arguments)} were given (unexpected '{extra.literal}'); usage: {usage}",
            directive=name,
            expected=str(len(usage.slots)),
            actual=str(len(arguments)),
            line=group.line,
        )

    return Arguments(name, bound)


def try_bind(group: TokenGroup, usage: UsageDefinition) -> Result[Arguments, BindError]:
    """``bind`` returning Ok(arguments) or Err(BindError)."""
    return capture(bind, group, usage, errors=(BindError,))
