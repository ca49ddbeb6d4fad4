"""
Directive base class.

A directive is one argument-bound transformation step. Its lifecycle is:

    usage = DirectiveClass.define()      # once per class
    directive = DirectiveClass()
    directive.initialize(arguments)      # once, at compile time
    directive.execute(rows, context)     # once per batch
    directive.destroy()                  # when the pipeline is torn down

Directives hold only their bound configuration; anything that must survive
across batches lives in the context's transient store.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Tuple

from .context import ExecutorContext
from .tokens import TokenGroup
from .usage import Arguments, UsageDefinition


Row = Dict[str, Any]


class Directive(ABC):
    """
    Base class for all directives.

    Subclasses set ``NAME`` (the word used in recipes) and implement
    ``define`` and ``execute``.
    """

    NAME: ClassVar[str] = ""
    DESCRIPTION: ClassVar[str] = ""
    CATEGORIES: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    @abstractmethod
    def define(cls) -> UsageDefinition:
        """Return the argument signature of this directive."""
        raise NotImplementedError

    def initialize(self, args: Arguments) -> None:
        """Configure the directive from its bound arguments."""

    @abstractmethod
    def execute(self, rows: List[Row], context: ExecutorContext) -> List[Row]:
        """Process one batch and return the rows handed to the next directive."""
        raise NotImplementedError

    def destroy(self) -> None:
        """Release anything acquired in ``initialize``."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.NAME}>"


@dataclass(frozen=True)
class ExternalDirective:
    """
    Placeholder for a directive declared with ``#pragma load-directives``.

    The hosting environment must supply the implementation before the recipe
    can run (see ``CompiledRecipe.resolve``).
    """
    name: str
    group: TokenGroup

    @property
    def line(self) -> int:
        return self.group.line
