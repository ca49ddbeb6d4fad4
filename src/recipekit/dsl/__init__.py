"""
Directive DSL core: typed literal values, tokens, usage definitions and
binding, the transient store, execution context, directive base class and
registry.
"""

from .catpy import Result, Ok, Err, capture
from .units import ByteSize, TimeDuration, UnitValue
from .tokens import Token, TokenGroup, TokenType
from .usage import Arguments, UsageDefinition, UsageSlot, bind, try_bind
from .store import TransientStore, TransientVariableScope
from .context import Environment, ExecutorContext
from .directive import Directive, ExternalDirective, Row
from .registry import DirectiveRegistry

__all__ = [
    "Result", "Ok", "Err", "capture",
    "ByteSize", "TimeDuration", "UnitValue",
    "Token", "TokenGroup", "TokenType",
    "Arguments", "UsageDefinition", "UsageSlot", "bind", "try_bind",
    "TransientStore", "TransientVariableScope",
    "Environment", "ExecutorContext",
    "Directive", "ExternalDirective", "Row",
    "DirectiveRegistry",
]
