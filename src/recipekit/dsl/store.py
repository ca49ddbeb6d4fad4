"""
Scoped key/value store shared by the directives of one pipeline instance.

GLOBAL entries live as long as the pipeline instance; LOCAL entries are
cleared at the start of every batch. The store is owned by exactly one
pipeline and is never shared between instances.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class TransientVariableScope(Enum):
    GLOBAL = "global"
    LOCAL = "local"


_MISSING = object()


class TransientStore:
    """
    Two explicit mappings, one per scope.

    ``get`` without a scope looks in LOCAL first and falls back to GLOBAL.
    """

    def __init__(self):
        self._scopes: Dict[TransientVariableScope, Dict[str, Any]] = {
            TransientVariableScope.GLOBAL: {},
            TransientVariableScope.LOCAL: {},
        }

    def get(
        self,
        name: str,
        default: Any = None,
        scope: Optional[TransientVariableScope] = None,
    ) -> Any:
        if scope is not None:
            return self._scopes[scope].get(name, default)
        value = self._scopes[TransientVariableScope.LOCAL].get(name, _MISSING)
        if value is _MISSING:
            value = self._scopes[TransientVariableScope.GLOBAL].get(name, default)
        return value

    def set(self, scope: TransientVariableScope, name: str, value: Any) -> None:
        self._scopes[scope][name] = value

    def increment(self, scope: TransientVariableScope, name: str, amount: int = 1) -> Any:
        """Add ``amount`` to ``name`` (missing counts as 0) and return the new value."""
        values = self._scopes[scope]
        current = values.get(name)
        if current is None:
            current = 0
        values[name] = current + amount
        return values[name]

    def contains(self, name: str, scope: Optional[TransientVariableScope] = None) -> bool:
        if scope is not None:
            return name in self._scopes[scope]
        return any(name in values for values in self._scopes.values())

    def names(self, scope: TransientVariableScope) -> List[str]:
        return list(self._scopes[scope])

    def reset(self, scope: TransientVariableScope) -> None:
        self._scopes[scope].clear()

    def reset_local(self) -> None:
        self.reset(TransientVariableScope.LOCAL)

    def reset_global(self) -> None:
        self.reset(TransientVariableScope.GLOBAL)

    def items(self, scope: TransientVariableScope) -> Iterator[Tuple[str, Any]]:
        return iter(list(self._scopes[scope].items()))

    def __repr__(self) -> str:
        return (
            f"TransientStore(global={self._scopes[TransientVariableScope.GLOBAL]!r}, "
            f"local={self._scopes[TransientVariableScope.LOCAL]!r})"
        )
