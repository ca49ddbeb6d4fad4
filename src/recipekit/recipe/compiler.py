"""
Recipe Compiler - recipe text to directive instances.

Two entry points:

- ``RecipeCompiler.compile`` produces the symbol table only (token groups,
  version, loadable directive names). Nothing is bound or instantiated.
- ``RecipeCompiler.build`` additionally resolves every directive name,
  binds its arguments against the usage definition and initializes a fresh
  directive instance. The first failure aborts the whole recipe.

Before parsing, the text goes through macro expansion, the configured
``load_directives`` pragma and, for legacy recipes, migration to the 2.0
dialect.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Sequence, Type, Union

from ..config_loader import get_engine_config
from ..dsl.catpy import Err, Ok, Result
from ..dsl.directive import Directive, ExternalDirective
from ..dsl.registry import DirectiveRegistry
from ..dsl.tokens import TokenGroup
from ..dsl.usage import UsageDefinition, bind
from ..exceptions import CompileError, RecipeError
from ..logging_config import configure_logger_for_debug_trace
from .migrate import RecipeMigrator, expand_macros, needs_migration, prepend_load_directives
from .parser import RecipeParser
from .transformer import RecipeSymbols, RecipeTransformer

logger = configure_logger_for_debug_trace(__name__)

Recipe = Union[str, Sequence[str]]
CompiledStep = Union[Directive, ExternalDirective]


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass
class CompileStatus:
    """Result of compiling a recipe into its symbol table."""
    success: bool
    symbols: Optional[RecipeSymbols] = None
    errors: List[RecipeError] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def __bool__(self) -> bool:
        return self.success


@dataclass
class CompiledRecipe:
    """
    Ordered, initialized directives of one recipe.

    Names declared with ``#pragma load-directives`` whose implementation was
    not supplied at build time stay as ``ExternalDirective`` placeholders
    until ``resolve`` is called.
    """
    directives: List[CompiledStep]
    symbols: RecipeSymbols

    @property
    def loadable(self) -> FrozenSet[str]:
        return self.symbols.loadable_directives

    @property
    def version(self) -> Optional[str]:
        return self.symbols.version

    @property
    def unresolved(self) -> List[str]:
        return [d.name for d in self.directives if isinstance(d, ExternalDirective)]

    @property
    def is_resolved(self) -> bool:
        return not self.unresolved

    def resolve(self, factories: Mapping[str, Type[Directive]]) -> "CompiledRecipe":
        """
        Replace placeholders with host-supplied directive classes.

        Placeholders without a matching factory are left in place.

        Raises:
            BindError, ConfigError: If a supplied directive rejects its arguments
            CompileError: If a supplied directive fails to initialize
        """
        for index, step in enumerate(self.directives):
            if isinstance(step, ExternalDirective) and step.name in factories:
                self.directives[index] = instantiate(step.group, factories[step.name])
                logger.debug(f"Resolved loadable directive '{step.name}' (line {step.line})")
        return self

    def destroy(self) -> None:
        for step in self.directives:
            if isinstance(step, Directive):
                step.destroy()

    def __iter__(self) -> Iterator[CompiledStep]:
        return iter(self.directives)

    def __len__(self) -> int:
        return len(self.directives)


def instantiate(
    group: TokenGroup,
    factory: Type[Directive],
    usage: Optional[UsageDefinition] = None,
) -> Directive:
    """
    Bind ``group`` and initialize a new ``factory`` instance.

    ``usage`` is the definition cached by the registry; without it the
    factory's ``define()`` is asked.

    Raises:
        BindError, ConfigError: If the arguments are rejected
        CompileError: If the directive fails with any other exception
    """
    try:
        arguments = bind(group, usage if usage is not None else factory.define())
        directive = factory()
        directive.initialize(arguments)
    except RecipeError:
        raise
    except Exception as e:
        raise CompileError(
            f"Directive '{group.name}' at line {group.line} failed to initialize: "
            f"{type(e).__name__}: {e}",
            directive=group.name,
            line=group.line,
        ) from e
    return directive


# ============================================================
# COMPILER
# ============================================================

class RecipeCompiler:
    """
    Compiles recipes against a directive registry.

    Usage:
        compiler = RecipeCompiler(default_registry())
        status = compiler.compile("rename :a :b")
        recipe = compiler.build("rename :a :b").unwrap()

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a compiler.
    ::: This is stateless.
    """

    def __init__(
        self,
        registry: Optional[DirectiveRegistry] = None,
        migrate_legacy: Optional[bool] = None,
        load_directives: Optional[Sequence[str]] = None,
    ):
        if registry is None:
            from ..directives import default_registry
            registry = default_registry()
        self.registry = registry

        if migrate_legacy is None or load_directives is None:
            config = get_engine_config()
            if migrate_legacy is None:
                migrate_legacy = config.migrate_legacy
            if load_directives is None:
                load_directives = config.load_directives
        self.migrate_legacy = migrate_legacy
        self.load_directives = list(load_directives)

        self.parser = RecipeParser()
        self.transformer = RecipeTransformer()
        self.migrator = RecipeMigrator(registry)

    # --------------------------------------------------------
    # Pre-processing
    # --------------------------------------------------------

    def preprocess(self, recipe: Recipe, macros: Optional[Mapping[str, str]] = None) -> str:
        """
        Expand macros, declare configured loadable directives and migrate
        legacy recipes.

        Raises:
            CompileError: If the recipe declares an unsupported version
        """
        text = recipe if isinstance(recipe, str) else "\n".join(recipe)
        text = expand_macros(text, macros)
        text = prepend_load_directives(text, self.load_directives)
        if needs_migration(text) and self.migrate_legacy:
            text = self.migrator.migrate(text)
        return text

    # --------------------------------------------------------
    # Compile
    # --------------------------------------------------------

    def compile(self, recipe: Recipe, macros: Optional[Mapping[str, str]] = None) -> CompileStatus:
        """
        Compile a recipe into its symbol table.

        Never raises for recipe errors; they are reported in the status.
        """
        try:
            source = self.preprocess(recipe, macros)
        except RecipeError as e:
            return CompileStatus(success=False, errors=[e])

        result = self.parser.parse(source)
        if not result.success:
            return CompileStatus(success=False, errors=list(result.errors), source=source)

        try:
            symbols = self.transformer.transform(result.tree, source)
        except RecipeError as e:
            return CompileStatus(success=False, errors=[e], source=source)

        logger.debug(
            f"Compiled recipe: {len(symbols)} statement(s), version={symbols.version}, "
            f"loadable={symbols.loadable}"
        )
        return CompileStatus(success=True, symbols=symbols, source=source)

    # --------------------------------------------------------
    # Build
    # --------------------------------------------------------

    def build(
        self,
        recipe: Recipe,
        macros: Optional[Mapping[str, str]] = None,
        external: Optional[Mapping[str, Type[Directive]]] = None,
    ) -> Result[CompiledRecipe, RecipeError]:
        """
        Compile, bind and initialize every directive of ``recipe``.

        Args:
            recipe: Recipe text or lines
            macros: Values for ``${name}`` references
            external: Implementations of directives declared with
                ``#pragma load-directives``

        Returns:
            Ok(CompiledRecipe) or Err with the first error
        """
        status = self.compile(recipe, macros)
        if not status.success:
            return Err(status.errors[0])

        symbols = status.symbols
        external = external or {}
        steps: List[CompiledStep] = []
        try:
            for group in symbols:
                steps.append(self._build_step(group, symbols, external))
        except RecipeError as e:
            for step in steps:
                if isinstance(step, Directive):
                    step.destroy()
            return Err(e)

        compiled = CompiledRecipe(steps, symbols)
        if compiled.unresolved:
            logger.warning(f"Loadable directives without implementation: {compiled.unresolved}")
        return Ok(compiled)

    def _build_step(
        self,
        group: TokenGroup,
        symbols: RecipeSymbols,
        external: Mapping[str, Type[Directive]],
    ) -> CompiledStep:
        name = group.name
        factory = self.registry.get(name)
        if factory is None and name in symbols.loadable:
            factory = external.get(name)
            if factory is None:
                return ExternalDirective(name, group)
        if factory is None:
            raise CompileError(
                f"Directive '{name}' at line {group.line} is not registered and was "
                f"not declared with '#pragma load-directives'",
                directive=name,
                line=group.line,
            )
        if self.registry.contains(name):
            return instantiate(group, factory, self.registry.usage(name))
        return instantiate(group, factory)
