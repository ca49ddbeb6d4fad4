"""
Directive Registry - Directive Registration and Discovery

This module provides the registry the compiler resolves directive names
against:
- Directive registration and lookup by name
- Discovery by category
- Usage definitions cached once per directive class

A registry is an explicit object. Each compiler (and therefore each
pipeline) is handed the registry it should use; there is no process-wide
instance.
"""

from typing import Dict, Iterable, List, Optional, Type

from ..exceptions import CompileError
from .directive import Directive
from .usage import UsageDefinition


class DirectiveRegistry:
    """
    Name to directive class mapping.

    Example:
        registry = DirectiveRegistry()
        registry.register(AggregateStats)

        # Lookup
        cls = registry.get("aggregate-stats")
        usage = registry.usage("aggregate-stats")

        # Discovery
        column_ops = registry.by_category("columns")

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a registry.
    ::: This is stateful.
    """

    def __init__(self, directives: Optional[Iterable[Type[Directive]]] = None):
        self._directives: Dict[str, Type[Directive]] = {}
        self._usages: Dict[str, UsageDefinition] = {}
        self._by_category: Dict[str, List[str]] = {}
        for directive in directives or ():
            self.register(directive)

    def register(self, directive: Type[Directive], replace: bool = False) -> None:
        """
        Register a directive class under its ``NAME``.

        Args:
            directive: Directive subclass to register
            replace: Overwrite an existing registration with the same name

        Raises:
            CompileError: If the name is empty or already registered
        """
        name = getattr(directive, "NAME", "")
        if not name:
            raise CompileError(f"Directive class {directive.__name__} has no NAME")

        if name in self._directives and not replace:
            raise CompileError(
                f"Directive '{name}' is already registered "
                f"({self._directives[name].__name__})",
                directive=name,
            )
        if name in self._directives:
            self.unregister(name)

        usage = directive.define()
        if usage.directive != name:
            raise CompileError(
                f"Usage definition of {directive.__name__} is for '{usage.directive}', "
                f"expected '{name}'",
                directive=name,
            )

        self._directives[name] = directive
        self._usages[name] = usage

        # Index by category
        for category in getattr(directive, "CATEGORIES", ()):
            names = self._by_category.setdefault(category, [])
            if name not in names:
                names.append(name)

    def unregister(self, name: str) -> bool:
        """Remove a directive. Returns True if it was registered."""
        if name not in self._directives:
            return False
        del self._directives[name]
        del self._usages[name]
        for names in self._by_category.values():
            if name in names:
                names.remove(name)
        return True

    def get(self, name: str) -> Optional[Type[Directive]]:
        return self._directives.get(name)

    def contains(self, name: str) -> bool:
        return name in self._directives

    def names(self) -> List[str]:
        return sorted(self._directives)

    def by_category(self, category: str) -> List[Type[Directive]]:
        """
        Get all directives in a category.

        Args:
            category: Category name (e.g., "columns", "aggregation")

        Returns:
            List of matching directive classes
        """
        names = self._by_category.get(category, [])
        return [self._directives[n] for n in names if n in self._directives]

    def categories(self) -> List[str]:
        return sorted(c for c, names in self._by_category.items() if names)

    def usage(self, name: str) -> UsageDefinition:
        try:
            return self._usages[name]
        except KeyError:
            raise CompileError(f"Unknown directive '{name}'", directive=name) from None

    def create(self, name: str) -> Directive:
        """Instantiate a fresh, uninitialized directive."""
        directive = self.get(name)
        if directive is None:
            raise CompileError(f"Unknown directive '{name}'", directive=name)
        return directive()

    def clear(self) -> None:
        self._directives.clear()
        self._usages.clear()
        self._by_category.clear()

    def __contains__(self, name: str) -> bool:
        return self.contains(name)

    def __len__(self) -> int:
        return len(self._directives)

    def __repr__(self) -> str:
        return f"DirectiveRegistry({self.names()!r})"
