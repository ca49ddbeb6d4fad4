"""
Recipe pipeline executor.

A ``RecipePipeline`` runs the directives of one compiled recipe over a
stream of batches. Each pipeline owns its directive instances and its
transient store; nothing is shared between pipelines.

State machine:

    READY --batch--> READY
    READY --final batch--> FINISHED
    any   --error--> FAILED
    any   --close()--> CLOSED

Batches may be a list of row dicts or a ``pyarrow.Table``.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type, Union

import pyarrow as pa

from .config_loader import get_engine_config
from .dsl.catpy import Result, capture
from .dsl.context import IS_LAST_PROPERTY, Environment, ExecutorContext
from .dsl.directive import Directive, ExternalDirective, Row
from .dsl.registry import DirectiveRegistry
from .dsl.store import TransientStore
from .dsl.units import UnitValue
from .exceptions import CompileError, ExecutionError, RecipeError
from .logging_config import configure_logger_for_debug_trace
from .recipe.compiler import CompiledRecipe, RecipeCompiler

logger = configure_logger_for_debug_trace(__name__)

Batch = Union[pa.Table, Sequence[Mapping[str, Any]]]


# =============================================================================
# Arrow Utilities
# =============================================================================

def to_arrow(rows: Union[pa.Table, List[Row]]) -> pa.Table:
    """Convert rows to a PyArrow table; unit values become their literal text."""
    if isinstance(rows, pa.Table):
        return rows
    if not rows:
        return pa.table({})
    return pa.Table.from_pylist([
        {k: (v.literal if isinstance(v, UnitValue) else v) for k, v in row.items()}
        for row in rows
    ])


def to_rows(batch: Optional[Batch]) -> List[Row]:
    """Convert a batch to a list of (copied) row dicts."""
    if batch is None:
        return []
    if isinstance(batch, pa.Table):
        return batch.to_pylist()
    return [dict(row) for row in batch]


# =============================================================================
# Pipeline
# =============================================================================

class PipelineState(Enum):
    READY = "ready"
    FINISHED = "finished"
    FAILED = "failed"
    CLOSED = "closed"


class RecipePipeline:
    """
    Stateful batch executor for one recipe.

    Example:
        with RecipePipeline.from_recipe(recipe_text) as pipeline:
            for batch in batches[:-1]:
                pipeline.execute(batch)
            summary = pipeline.execute(batches[-1], is_last=True)

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a pipeline.
    ::: This is stateful.
    """

    def __init__(
        self,
        directives: Union[CompiledRecipe, Sequence[Directive]],
        environment: Optional[Environment] = None,
        properties: Optional[Mapping[str, str]] = None,
        name: str = "default",
    ):
        steps = list(directives)
        unresolved = [s.name for s in steps if isinstance(s, ExternalDirective)]
        if unresolved:
            raise CompileError(
                f"Cannot run a recipe with unresolved loadable directives: {', '.join(unresolved)}",
                directive=unresolved[0],
            )

        if environment is None:
            environment = get_engine_config().environment

        self._directives: List[Directive] = steps
        self._properties: Dict[str, str] = dict(properties or {})
        self.context = ExecutorContext(
            environment=environment,
            store=TransientStore(),
            properties=dict(self._properties),
            name=name,
        )
        self.state = PipelineState.READY
        self.batches_processed = 0

    @classmethod
    def from_recipe(
        cls,
        recipe: Union[str, Sequence[str]],
        registry: Optional[DirectiveRegistry] = None,
        macros: Optional[Mapping[str, str]] = None,
        external: Optional[Mapping[str, Type[Directive]]] = None,
        **kwargs: Any,
    ) -> "RecipePipeline":
        """
        Compile ``recipe`` and wrap it in a pipeline.

        Raises:
            RecipeError: The first compile, bind or configuration error
        """
        compiled = RecipeCompiler(registry).build(recipe, macros, external).unwrap()
        return cls(compiled, **kwargs)

    @property
    def directives(self) -> List[Directive]:
        return list(self._directives)

    @property
    def store(self) -> TransientStore:
        return self.context.store

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(self, batch: Optional[Batch], is_last: bool = False) -> List[Row]:
        """
        Run one batch through every directive in declaration order.

        Args:
            batch: Rows of this batch
            is_last: Marks the final batch of the stream

        Returns:
            Rows produced by the last directive

        Raises:
            ExecutionError: If the pipeline cannot accept batches or a
                directive fails
        """
        if self.state is not PipelineState.READY:
            raise ExecutionError(
                f"Pipeline '{self.context.name}' is {self.state.value} and accepts no more batches"
            )

        properties = dict(self._properties)
        if is_last:
            properties[IS_LAST_PROPERTY] = "true"
        self.context.properties = properties
        self.context.store.reset_local()

        rows = to_rows(batch)
        logger.debug(
            f"Pipeline '{self.context.name}' batch {self.batches_processed + 1}: "
            f"{len(rows)} row(s), last={self.context.is_last}"
        )

        for directive in self._directives:
            try:
                rows = directive.execute(rows, self.context)
            except RecipeError as e:
                self.state = PipelineState.FAILED
                if hasattr(e, "directive") and e.directive is None:
                    e.directive = directive.NAME
                raise
            except Exception as e:
                self.state = PipelineState.FAILED
                raise ExecutionError(
                    f"Directive '{directive.NAME}' failed: {type(e).__name__}: {e}",
                    directive=directive.NAME,
                ) from e
            if rows is None:
                self.state = PipelineState.FAILED
                raise ExecutionError(
                    f"Directive '{directive.NAME}' returned no rows; return an empty list instead",
                    directive=directive.NAME,
                )

        self.batches_processed += 1
        explicit_last = str(properties.get(IS_LAST_PROPERTY, "")).lower() == "true"
        if explicit_last and self.context.environment is not Environment.TESTING:
            self.state = PipelineState.FINISHED
            logger.debug(f"Pipeline '{self.context.name}' finished after {self.batches_processed} batch(es)")
        return rows

    def run(self, batch: Optional[Batch], is_last: bool = False) -> Result[List[Row], RecipeError]:
        """``execute`` returning Ok(rows) or Err(RecipeError)."""
        return capture(self.execute, batch, is_last=is_last)

    def process(self, batches: Iterable[Batch]) -> List[Row]:
        """
        Run a whole stream, marking its final batch as the last one.

        Returns:
            Concatenated output rows of all batches
        """
        output: List[Row] = []
        iterator = iter(batches)
        try:
            current = next(iterator)
        except StopIteration:
            return self.execute([], is_last=True)
        for upcoming in iterator:
            output.extend(self.execute(current))
            current = upcoming
        output.extend(self.execute(current, is_last=True))
        return output

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Destroy every directive and discard the transient store."""
        if self.state is PipelineState.CLOSED:
            return
        for directive in self._directives:
            try:
                directive.destroy()
            except Exception as e:
                logger.warning(f"Error destroying directive '{directive.NAME}': {e}")
        self.context.store.reset_local()
        self.context.store.reset_global()
        self.state = PipelineState.CLOSED

    def __enter__(self) -> "RecipePipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        names = [d.NAME for d in self._directives]
        return f"RecipePipeline({names!r}, state={self.state.value})"
