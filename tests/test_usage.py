"""
Tests for usage definitions, argument binding and the directive registry.
"""

import pytest

from recipekit.directives import AggregateStats, Drop, Keep, Rename, default_registry
from recipekit.dsl.directive import Directive
from recipekit.dsl.tokens import Token, TokenGroup, TokenType
from recipekit.dsl.registry import DirectiveRegistry
from recipekit.dsl.usage import UsageDefinition, bind, try_bind
from recipekit.exceptions import BindError, CompileError


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def rename_usage():
    return Rename.define()


@pytest.fixture
def stats_usage():
    return AggregateStats.define()


def _stats_group(*extra):
    return TokenGroup.of(
        "aggregate-stats",
        Token.column_name("size"),
        Token.column_name("time"),
        Token.text("total_size"),
        Token.column_name("total_time"),
        *extra,
    )


# =============================================================================
# Usage definitions
# =============================================================================

class TestUsageDefinition:
    """Builder rules."""

    def test_slots_in_order(self, stats_usage):
        assert stats_usage.names() == [
            "size-column", "time-column", "size-target", "time-target",
            "size-unit", "time-unit", "aggregation-type",
        ]
        assert stats_usage.required_count == 4

    def test_default_implies_optional(self):
        usage = (UsageDefinition.builder("x")
                 .define("mode", TokenType.TEXT, default=Token.text("a"))
                 .build())
        assert usage.slot("mode").optional

    def test_required_after_optional_rejected(self):
        builder = UsageDefinition.builder("x").define("a", TokenType.TEXT, optional=True)
        with pytest.raises(ValueError):
            builder.define("b", TokenType.TEXT)

    def test_duplicate_slot_rejected(self):
        builder = UsageDefinition.builder("x").define("a", TokenType.TEXT)
        with pytest.raises(ValueError):
            builder.define("a", TokenType.NUMERIC)

    def test_default_must_match_variant(self):
        with pytest.raises(ValueError):
            UsageDefinition.builder("x").define("a", TokenType.NUMERIC, default=Token.text("1"))

    def test_slot_requires_variant(self):
        with pytest.raises(ValueError):
            UsageDefinition.builder("x").define("a")

    def test_str(self, rename_usage):
        assert str(rename_usage) == "rename <source:COLUMN_NAME> <target:COLUMN_NAME>"


# =============================================================================
# Binding
# =============================================================================

class TestBind:
    """Positional binding of tokens to slots."""

    def test_binds_in_order(self, rename_usage):
        group = TokenGroup.of("rename", Token.column_name("a"), Token.column_name("b"))
        args = bind(group, rename_usage)
        assert args.value("source") == "a"
        assert args.value("target") == "b"
        assert args.token("target").type is TokenType.COLUMN_NAME
        assert set(args) == {"source", "target"}

    def test_missing_required(self, rename_usage):
        group = TokenGroup.of("rename", Token.column_name("a"), line=4)
        with pytest.raises(BindError) as info:
            bind(group, rename_usage)
        assert info.value.directive == "rename"
        assert info.value.slot == "target"
        assert info.value.actual is None
        assert info.value.line == 4

    def test_variant_mismatch(self, rename_usage):
        group = TokenGroup.of("rename", Token.text("a"), Token.column_name("b"))
        with pytest.raises(BindError) as info:
            bind(group, rename_usage)
        assert info.value.slot == "source"
        assert info.value.expected == "COLUMN_NAME"
        assert info.value.actual == "TEXT"

    def test_surplus_arguments(self, rename_usage):
        group = TokenGroup.of(
            "rename", Token.column_name("a"), Token.column_name("b"), Token.column_name("c"),
        )
        with pytest.raises(BindError, match="at most 2"):
            bind(group, rename_usage)

    def test_defaults_fill_optional_slots(self, stats_usage):
        args = bind(_stats_group(), stats_usage)
        assert args.value("size-unit") == "MB"
        assert args.value("time-unit") == "s"
        assert args.value("aggregation-type") == "TOTAL"

    def test_multi_variant_slot(self, stats_usage):
        args = bind(_stats_group(), stats_usage)
        assert args.token("size-target").type is TokenType.TEXT
        assert args.token("time-target").type is TokenType.COLUMN_NAME

    def test_optional_without_default_is_absent(self):
        usage = (UsageDefinition.builder("x")
                 .define("a", TokenType.TEXT)
                 .define("b", TokenType.NUMERIC, optional=True)
                 .build())
        args = bind(TokenGroup.of("x", Token.text("v")), usage)
        assert not args.contains("b")
        assert args.value("b", 7) == 7
        with pytest.raises(KeyError):
            args.token("b")

    def test_binding_is_structural(self, stats_usage):
        # A unit slot takes any text; its meaning is checked by the directive.
        args = bind(_stats_group(Token.text("parsecs")), stats_usage)
        assert args.value("size-unit") == "parsecs"

    def test_try_bind(self, rename_usage):
        ok = try_bind(TokenGroup.of("rename", Token.column_name("a"), Token.column_name("b")), rename_usage)
        assert ok.is_ok()
        err = try_bind(TokenGroup.of("rename"), rename_usage)
        assert err.is_err()
        assert isinstance(err.error, BindError)

    def test_to_dict(self, rename_usage):
        args = bind(TokenGroup.of("rename", Token.column_name("a"), Token.column_name("b")), rename_usage)
        assert args.to_dict()["source"]["value"] == "a"


# =============================================================================
# Registry
# =============================================================================

class TestDirectiveRegistry:
    """Explicit registry instances."""

    def test_default_registry_contents(self, registry):
        assert registry.names() == [
            "aggregate-stats", "drop", "keep", "parse-as-duration", "parse-as-size", "rename",
        ]
        assert registry.get("rename") is Rename
        assert "drop" in registry
        assert len(registry) == 6

    def test_registries_are_independent(self):
        first = default_registry()
        second = default_registry()
        first.unregister("rename")
        assert not first.contains("rename")
        assert second.contains("rename")

    def test_duplicate_rejected(self, registry):
        with pytest.raises(CompileError):
            registry.register(Rename)

    def test_replace(self, registry):
        class OtherRename(Rename):
            pass

        registry.register(OtherRename, replace=True)
        assert registry.get("rename") is OtherRename

    def test_nameless_rejected(self):
        class Nameless(Directive):
            @classmethod
            def define(cls):
                return UsageDefinition.builder("").build()

            def execute(self, rows, context):
                return rows

        with pytest.raises(CompileError):
            DirectiveRegistry().register(Nameless)

    def test_by_category(self, registry):
        assert registry.by_category("columns") == [Rename, Drop, Keep]
        assert registry.by_category("aggregator") == [AggregateStats]
        assert registry.by_category("missing") == []
        assert "columns" in registry.categories()

    def test_usage_cached(self, registry):
        assert registry.usage("rename") == Rename.define()
        with pytest.raises(CompileError):
            registry.usage("nope")

    def test_create_returns_fresh_instances(self, registry):
        first = registry.create("drop")
        second = registry.create("drop")
        assert isinstance(first, Drop)
        assert first is not second
        with pytest.raises(CompileError):
            registry.create("nope")

    def test_unregister_and_clear(self, registry):
        assert registry.unregister("keep")
        assert not registry.unregister("keep")
        assert Keep not in registry.by_category("columns")
        registry.clear()
        assert len(registry) == 0
