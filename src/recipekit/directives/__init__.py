"""
Built-in directives.

``default_registry()`` returns a new registry holding all of them; callers
that need extra directives register them on their own registry instance.
"""

from typing import List, Type

from ..dsl.directive import Directive
from ..dsl.registry import DirectiveRegistry
from .aggregate_stats import AggregateStats, AggregationType
from .columns import Drop, Keep, Rename
from .parse_units import ParseAsDuration, ParseAsSize

BUILTIN_DIRECTIVES: List[Type[Directive]] = [
    AggregateStats,
    Rename,
    Drop,
    Keep,
    ParseAsSize,
    ParseAsDuration,
]


def default_registry() -> DirectiveRegistry:
    """Create a fresh registry with every built-in directive."""
    return DirectiveRegistry(BUILTIN_DIRECTIVES)


__all__ = [
    "AggregateStats",
    "AggregationType",
    "Rename",
    "Drop",
    "Keep",
    "ParseAsSize",
    "ParseAsDuration",
    "BUILTIN_DIRECTIVES",
    "default_registry",
]
