"""
catpy.py - Result values for the recipe engine.

Compilation, binding and batch execution report failures as explicit values
rather than only by unwinding:

- Core typeclasses: Functor, Monad
- Concrete instance: Result (Ok/Err) carrying a RecipeError on failure
- Helpers: capture (run a callable, collecting engine errors into Err)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Generic,
    Tuple,
    Type,
    TypeVar,
)
from abc import ABC, abstractmethod

from ..exceptions import RecipeError

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")

# ---------------------------------------------------------------------------
# Core typeclasses
# ---------------------------------------------------------------------------

class Functor(ABC, Generic[T]):
    """
    A structure that supports mapping a function over the values it contains.

    Laws (for all f: a->b, g: b->c):
      1) Identity:     fmap(id)      == id
      2) Composition:  fmap(g)∘fmap(f) == fmap(g∘f)
    """

    @abstractmethod
    def fmap(self, f: Callable[[T], U]) -> "Functor[U]":
        """Map a pure function over the structure."""
        raise NotImplementedError


class Monad(Functor[T], ABC):
    """
    A structure that supports sequencing (bind).

    Laws (for all x and functions f: a -> m b, g: b -> m c):
      1) Left identity:  pure(x).bind(f) == f(x)
      2) Right identity: m.bind(pure)    == m
      3) Associativity:  m.bind(f).bind(g) == m.bind(lambda x: f(x).bind(g))
    """

    @classmethod
    @abstractmethod
    def pure(cls, x: U) -> "Monad[U]":
        """Lift a value into the monadic context."""
        raise NotImplementedError

    @abstractmethod
    def bind(self, f: Callable[[T], "Monad[U]"]) -> "Monad[U]":
        """Chain a function that returns a wrapped value (aka flatMap)."""
        raise NotImplementedError

    def __rshift__(self, f: Callable[[T], "Monad[U]"]) -> "Monad[U]":
        """Syntactic sugar: m >> f == m.bind(f)"""
        return self.bind(f)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class Result(Monad[T], ABC, Generic[T, E]):
    """
    Tagged union for success or failure with an error value.
    - Ok(value)
    - Err(error)

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a monad.
    ::: This is stateless.
    """

    @classmethod
    def pure(cls, x: U) -> "Result[U, E]":  # type: ignore[override]
        return Ok(x)

    def is_ok(self) -> bool:
        return isinstance(self, Ok)

    def is_err(self) -> bool:
        return isinstance(self, Err)

    def unwrap(self) -> T:
        """Get the value, or raise the carried error if Err."""
        if isinstance(self, Ok):
            return self.value
        error = self.error  # type: ignore[attr-defined]
        if isinstance(error, BaseException):
            raise error
        raise ValueError(f"Cannot unwrap Err: {self}")

    def unwrap_or(self, default: T) -> T:
        """Get the value or return default if Err."""
        if isinstance(self, Ok):
            return self.value
        return default

    def map_err(self, f: Callable[[E], E]) -> "Result[T, E]":
        """Map a function over the error value."""
        if isinstance(self, Err):
            return Err(f(self.error))
        return self


@dataclass(frozen=True)
class Ok(Result[T, E]):
    """Represents a successful result."""
    value: T

    def bind(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return f(self.value)

    def fmap(self, f: Callable[[T], U]) -> Result[U, E]:  # type: ignore[override]
        return Ok(f(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True)
class Err(Result[Any, E]):
    """Represents a failed result with error information."""
    error: E

    def bind(self, f: Callable[[Any], Result[U, E]]) -> Result[U, E]:
        return self  # type: ignore[return-value]

    def fmap(self, f: Callable[[Any], U]) -> Result[U, E]:  # type: ignore[override]
        return self  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def capture(
    fn: Callable[..., T],
    *args: Any,
    errors: Tuple[Type[BaseException], ...] = (RecipeError,),
    **kwargs: Any,
) -> Result[T, Any]:
    """
    Call ``fn`` and wrap the outcome.

    Exceptions listed in ``errors`` become ``Err(exc)``; anything else
    propagates unchanged.
    """
    try:
        return Ok(fn(*args, **kwargs))
    except errors as e:
        return Err(e)
