"""
Tests for the scoped transient store and the execution context.
"""

import pytest

from recipekit.dsl.context import Environment, ExecutorContext
from recipekit.dsl.store import TransientStore, TransientVariableScope

GLOBAL = TransientVariableScope.GLOBAL
LOCAL = TransientVariableScope.LOCAL


class TestTransientStore:

    def test_set_and_get(self):
        store = TransientStore()
        store.set(GLOBAL, "total", 10)
        assert store.get("total") == 10
        assert store.get("total", scope=GLOBAL) == 10
        assert store.get("total", scope=LOCAL) is None

    def test_local_shadows_global(self):
        store = TransientStore()
        store.set(GLOBAL, "x", 1)
        store.set(LOCAL, "x", 2)
        assert store.get("x") == 2
        store.reset_local()
        assert store.get("x") == 1

    def test_stored_none_is_returned(self):
        store = TransientStore()
        store.set(GLOBAL, "x", 1)
        store.set(LOCAL, "x", None)
        assert store.get("x", "fallback") is None

    def test_default(self):
        assert TransientStore().get("missing", 0) == 0

    def test_increment(self):
        store = TransientStore()
        assert store.increment(GLOBAL, "n") == 1
        assert store.increment(GLOBAL, "n", 5) == 6
        assert store.get("n") == 6

    def test_increment_none(self):
        store = TransientStore()
        store.set(GLOBAL, "n", None)
        assert store.increment(GLOBAL, "n", 3) == 3

    def test_contains_and_names(self):
        store = TransientStore()
        store.set(LOCAL, "a", 1)
        assert store.contains("a")
        assert store.contains("a", LOCAL)
        assert not store.contains("a", GLOBAL)
        assert store.names(LOCAL) == ["a"]

    def test_reset_scopes_independently(self):
        store = TransientStore()
        store.set(GLOBAL, "g", 1)
        store.set(LOCAL, "l", 1)
        store.reset_global()
        assert not store.contains("g")
        assert store.contains("l")
        store.reset(LOCAL)
        assert store.names(LOCAL) == []

    def test_items_is_a_snapshot(self):
        store = TransientStore()
        store.set(GLOBAL, "a", 1)
        for name, _ in store.items(GLOBAL):
            store.set(GLOBAL, name + "-copy", 2)
        assert sorted(store.names(GLOBAL)) == ["a", "a-copy"]

    def test_stores_are_independent(self):
        first, second = TransientStore(), TransientStore()
        first.set(GLOBAL, "x", 1)
        assert not second.contains("x")


class TestExecutorContext:

    def test_is_last_from_property(self):
        context = ExecutorContext(properties={"isLast": "TRUE"})
        assert context.is_last
        assert not ExecutorContext(properties={"isLast": "false"}).is_last
        assert not ExecutorContext().is_last

    def test_testing_is_always_last(self):
        assert ExecutorContext(environment=Environment.TESTING).is_last

    def test_get_property(self):
        context = ExecutorContext(properties={"a": "b"})
        assert context.get_property("a") == "b"
        assert context.get_property("c", "d") == "d"

    def test_environment_parse(self):
        assert Environment.parse(" Testing ") is Environment.TESTING

    def test_environment_parse_unknown(self):
        with pytest.raises(ValueError, match="cloud"):
            Environment.parse("cloud")
