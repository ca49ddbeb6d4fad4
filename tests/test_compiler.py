"""
Tests for RecipeCompiler: symbol tables, building and loadable directives.
"""

import pytest

from recipekit.directives import AggregateStats, Rename
from recipekit.dsl.directive import Directive, ExternalDirective
from recipekit.dsl.tokens import TokenType
from recipekit.dsl.usage import UsageDefinition
from recipekit.exceptions import BindError, CompileError, ConfigError, ParseError
from recipekit.recipe.compiler import RecipeCompiler


# =============================================================================
# Test directives
# =============================================================================

class TextReverse(Directive):
    """Reverses the text of one column."""

    NAME = "text-reverse"

    @classmethod
    def define(cls):
        return UsageDefinition.builder(cls.NAME).define("column", TokenType.COLUMN_NAME).build()

    def initialize(self, args):
        self.column = args.value("column")

    def execute(self, rows, context):
        for row in rows:
            row[self.column] = row[self.column][::-1]
        return rows


class Tracking(Directive):
    """Records destroy() calls."""

    NAME = "tracking"
    destroyed = []

    @classmethod
    def define(cls):
        return UsageDefinition.builder(cls.NAME).define("column", TokenType.COLUMN_NAME).build()

    def execute(self, rows, context):
        return rows

    def destroy(self):
        Tracking.destroyed.append(self)


class Exploding(Directive):
    """Fails in initialize() with a non-recipe exception."""

    NAME = "exploding"

    @classmethod
    def define(cls):
        return UsageDefinition.builder(cls.NAME).define("column", TokenType.COLUMN_NAME).build()

    def initialize(self, args):
        raise ValueError("bad")

    def execute(self, rows, context):
        return rows


class CountingUsage(Directive):
    """Counts define() calls."""

    NAME = "counting"
    define_calls = 0

    @classmethod
    def define(cls):
        cls.define_calls += 1
        return UsageDefinition.builder(cls.NAME).define("column", TokenType.COLUMN_NAME).build()

    def execute(self, rows, context):
        return rows


LOADABLE_RECIPE = [
    "#pragma load-directives text-reverse, text-exchange;",
    "#pragma load-directives test-change,text-exchange, test1,test2,test3,test4;",
    "rename :a :b",
]


# =============================================================================
# Compile
# =============================================================================

class TestCompile:
    """Symbol table production."""

    def test_basic(self, compiler):
        status = compiler.compile("#pragma version 2.0;\nrename :a :b\ndrop :c;")
        assert status.success
        assert len(status.symbols) == 2
        assert status.symbols.directive_names() == ["rename", "drop"]
        assert status.symbols.version == "2.0"

    def test_loadables(self, compiler):
        status = compiler.compile(LOADABLE_RECIPE)
        assert status.success
        assert len(status.symbols.loadable_directives) == 7
        assert "text-reverse" in status.symbols.loadable_directives

    def test_legacy_recipe_is_migrated(self, compiler):
        status = compiler.compile("rename col1 col2")
        assert status.success
        group = status.symbols.groups[0]
        assert group.types() == [
            TokenType.DIRECTIVE_NAME, TokenType.COLUMN_NAME, TokenType.COLUMN_NAME,
        ]
        assert group.line == 1
        assert status.symbols.version == "2.0"

    def test_unsupported_version(self, compiler):
        status = compiler.compile("#pragma version 3.0;\nrename :a :b")
        assert not status.success
        assert isinstance(status.errors[0], CompileError)
        assert status.error_count == 1

    def test_syntax_error(self, compiler):
        status = compiler.compile("#pragma version 2.0;\nrename :a |")
        assert not bool(status)
        error = status.errors[0]
        assert isinstance(error, ParseError)
        assert error.line == 2

    def test_malformed_unit(self, compiler):
        status = compiler.compile("#pragma version 2.0;\nx 10XB")
        assert not status.success
        assert isinstance(status.errors[0], ParseError)

    def test_configured_load_directives(self, registry):
        compiler = RecipeCompiler(registry, migrate_legacy=True, load_directives=["text-reverse"])
        status = compiler.compile("text-reverse :body")
        assert status.success
        assert status.symbols.loadable == ["text-reverse"]

    def test_load_directives_from_environment(self, registry, monkeypatch):
        monkeypatch.setenv("RECIPEKIT_LOAD_DIRECTIVES", "text-reverse, other")
        compiler = RecipeCompiler(registry)
        assert compiler.load_directives == ["text-reverse", "other"]

    def test_migration_disabled_from_environment(self, registry, monkeypatch):
        monkeypatch.setenv("RECIPEKIT_MIGRATE_LEGACY", "false")
        assert RecipeCompiler(registry).migrate_legacy is False

    def test_macros(self, compiler):
        status = compiler.compile("rename :${src} :b", macros={"src": "a"})
        assert status.symbols.groups[0].arguments[0].value == "a"

    def test_default_registry(self):
        compiler = RecipeCompiler()
        assert compiler.registry.contains("aggregate-stats")


# =============================================================================
# Build
# =============================================================================

class TestBuild:
    """Binding and instantiation."""

    def test_build(self, compiler):
        compiled = compiler.build("#pragma version 2.0;\nrename :a :b; drop :c").unwrap()
        assert len(compiled) == 2
        assert isinstance(compiled.directives[0], Rename)
        assert compiled.directives[0].source == "a"
        assert compiled.is_resolved

    def test_fresh_instances_per_build(self, compiler):
        first = compiler.build("rename :a :b").unwrap()
        second = compiler.build("rename :a :b").unwrap()
        assert first.directives[0] is not second.directives[0]

    def test_unknown_directive(self, compiler):
        result = compiler.build("rename :a :b\nnope :a")
        assert result.is_err()
        error = result.error
        assert isinstance(error, CompileError)
        assert error.directive == "nope"
        assert error.line == 2

    def test_bind_error(self, compiler):
        result = compiler.build("#pragma version 2.0;\nrename :a")
        assert isinstance(result.error, BindError)
        assert result.error.slot == "target"
        with pytest.raises(BindError):
            result.unwrap()

    def test_config_error(self, compiler):
        result = compiler.build("aggregate-stats :s :t a b XB")
        assert isinstance(result.error, ConfigError)
        assert result.error.option == "size-unit"

    def test_aggregate_stats_defaults(self, compiler):
        compiled = compiler.build("aggregate-stats :s :t total_size total_time").unwrap()
        stats = compiled.directives[0]
        assert isinstance(stats, AggregateStats)
        assert stats.size_unit == "MB"
        assert stats.time_unit == "s"

    def test_migration_disabled(self, registry):
        compiler = RecipeCompiler(registry, migrate_legacy=False, load_directives=[])
        result = compiler.build("rename a b")
        assert isinstance(result.error, BindError)
        assert result.error.actual == "TEXT"

    def test_failure_destroys_built_steps(self, registry):
        Tracking.destroyed.clear()
        registry.register(Tracking)
        compiler = RecipeCompiler(registry, migrate_legacy=True, load_directives=[])
        result = compiler.build("#pragma version 2.0;\ntracking :a\nrename :a")
        assert result.is_err()
        assert len(Tracking.destroyed) == 1


    def test_initialize_exception_becomes_err(self, registry):
        Tracking.destroyed.clear()
        registry.register(Tracking)
        registry.register(Exploding)
        compiler = RecipeCompiler(registry, migrate_legacy=True, load_directives=[])
        result = compiler.build("#pragma version 2.0;\ntracking :a\nexploding :a")
        assert result.is_err()
        error = result.error
        assert isinstance(error, CompileError)
        assert error.directive == "exploding"
        assert error.line == 3
        assert "ValueError: bad" in str(error)
        assert isinstance(error.__cause__, ValueError)
        assert len(Tracking.destroyed) == 1

    def test_external_initialize_exception(self, compiler):
        recipe = "#pragma version 2.0;\n#pragma load-directives exploding;\nexploding :a"
        result = compiler.build(recipe, external={"exploding": Exploding})
        assert isinstance(result.error, CompileError)
        assert result.error.directive == "exploding"

    def test_registered_usage_is_reused(self, registry):
        CountingUsage.define_calls = 0
        registry.register(CountingUsage)
        assert CountingUsage.define_calls == 1
        compiler = RecipeCompiler(registry, migrate_legacy=True, load_directives=[])
        compiler.build("#pragma version 2.0;\ncounting :a\ncounting :b").unwrap()
        compiler.build("#pragma version 2.0;\ncounting :c").unwrap()
        assert CountingUsage.define_calls == 1


class TestLoadableDirectives:
    """Directives declared with '#pragma load-directives'."""

    RECIPE = "#pragma version 2.0;\n#pragma load-directives text-reverse;\ntext-reverse :body"

    def test_placeholder(self, compiler):
        compiled = compiler.build(self.RECIPE).unwrap()
        step = compiled.directives[0]
        assert isinstance(step, ExternalDirective)
        assert step.name == "text-reverse"
        assert step.line == 3
        assert compiled.unresolved == ["text-reverse"]
        assert compiled.loadable == frozenset({"text-reverse"})

    def test_resolve(self, compiler):
        compiled = compiler.build(self.RECIPE).unwrap()
        assert compiled.resolve({"text-reverse": TextReverse}) is compiled
        assert compiled.is_resolved
        assert isinstance(compiled.directives[0], TextReverse)
        assert compiled.directives[0].column == "body"

    def test_resolve_ignores_other_names(self, compiler):
        compiled = compiler.build(self.RECIPE).unwrap()
        compiled.resolve({"other": TextReverse})
        assert compiled.unresolved == ["text-reverse"]

    def test_external_at_build_time(self, compiler):
        compiled = compiler.build(self.RECIPE, external={"text-reverse": TextReverse}).unwrap()
        assert isinstance(compiled.directives[0], TextReverse)

    def test_external_requires_declaration(self, compiler):
        result = compiler.build(
            "#pragma version 2.0;\ntext-reverse :body", external={"text-reverse": TextReverse}
        )
        assert isinstance(result.error, CompileError)

    def test_external_bind_error(self, compiler):
        recipe = "#pragma version 2.0;\n#pragma load-directives text-reverse;\ntext-reverse 'x'"
        result = compiler.build(recipe, external={"text-reverse": TextReverse})
        assert isinstance(result.error, BindError)

    def test_registered_name_wins(self, compiler):
        recipe = "#pragma version 2.0;\n#pragma load-directives rename;\nrename :a :b"
        compiled = compiler.build(recipe).unwrap()
        assert isinstance(compiled.directives[0], Rename)
