"""
Recipe language: grammar, parser, tree transformer, legacy migration and
the compiler that turns recipe text into directive instances.
"""

from .parser import RecipeParser, ParseResult, parse_recipe, pretty_print_tree
from .transformer import RecipeSymbols, RecipeTransformer
from .migrate import RecipeMigrator, expand_macros, needs_migration, recipe_version
from .compiler import CompileStatus, CompiledRecipe, RecipeCompiler, instantiate

__all__ = [
    "RecipeParser",
    "ParseResult",
    "parse_recipe",
    "pretty_print_tree",
    "RecipeSymbols",
    "RecipeTransformer",
    "RecipeMigrator",
    "expand_macros",
    "needs_migration",
    "recipe_version",
    "CompileStatus",
    "CompiledRecipe",
    "RecipeCompiler",
    "instantiate",
]
