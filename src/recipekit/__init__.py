"""
recipekit - directive recipe engine.

Compiles human-written directive recipes into argument-bound directive
instances and runs them over a stream of row batches that share a scoped
transient store.

Example:
    from recipekit import RecipePipeline

    recipe = "aggregate-stats :size :time total_size total_time MB s"
    with RecipePipeline.from_recipe(recipe) as pipeline:
        pipeline.execute(first_batch)
        summary = pipeline.execute(last_batch, is_last=True)
"""

__version__ = "0.1.0"

from .exceptions import (
    RecipeError,
    FormatError,
    ParseError,
    BindError,
    CompileError,
    ConfigError,
    ExecutionError,
)
from .dsl import (
    ByteSize,
    TimeDuration,
    Token,
    TokenGroup,
    TokenType,
    UsageDefinition,
    Arguments,
    bind,
    try_bind,
    TransientStore,
    TransientVariableScope,
    Environment,
    ExecutorContext,
    Directive,
    ExternalDirective,
    DirectiveRegistry,
    Result,
    Ok,
    Err,
)
from .recipe import RecipeCompiler, CompileStatus, CompiledRecipe, RecipeParser
from .directives import default_registry
from .executor import RecipePipeline, PipelineState, to_arrow, to_rows

__all__ = [
    "RecipeError", "FormatError", "ParseError", "BindError",
    "CompileError", "ConfigError", "ExecutionError",
    "ByteSize", "TimeDuration",
    "Token", "TokenGroup", "TokenType",
    "UsageDefinition", "Arguments", "bind", "try_bind",
    "TransientStore", "TransientVariableScope",
    "Environment", "ExecutorContext",
    "Directive", "ExternalDirective", "DirectiveRegistry",
    "Result", "Ok", "Err",
    "RecipeCompiler", "CompileStatus", "CompiledRecipe", "RecipeParser",
    "default_registry",
    "RecipePipeline", "PipelineState", "to_arrow", "to_rows",
]
