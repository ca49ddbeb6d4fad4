"""
Shared pytest fixtures for recipe engine tests.

Every test runs with a clean RECIPEKIT_* environment and a project root
pointing at an empty temporary directory, so no recipekit.json on the
developer machine leaks into the results.
"""

import os
import pytest

from recipekit.config_loader import reset_config_loader
from recipekit.directives import default_registry
from recipekit.dsl.context import Environment, ExecutorContext
from recipekit.dsl.store import TransientStore
from recipekit.logging_config import configure_engine_logging
from recipekit.recipe.compiler import RecipeCompiler


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """
    Isolate configuration for all tests.

    Removes RECIPEKIT_* variables and forgets the process-wide config loader
    before and after each test, then puts the logging handlers back to their
    environment defaults.
    """
    for name in list(os.environ):
        if name.startswith("RECIPEKIT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RECIPEKIT_PROJECT_ROOT", str(tmp_path))
    reset_config_loader()

    yield

    reset_config_loader()
    configure_engine_logging()


@pytest.fixture
def registry():
    """A fresh registry holding the built-in directives."""
    return default_registry()


@pytest.fixture
def compiler(registry):
    """Compiler with legacy migration on and no configured loadables."""
    return RecipeCompiler(registry, migrate_legacy=True, load_directives=[])


@pytest.fixture
def testing_context():
    """Context in which every batch is the last one."""
    return ExecutorContext(environment=Environment.TESTING, store=TransientStore())


@pytest.fixture
def transform_context():
    """Context for a regular (non-final) batch."""
    return ExecutorContext(environment=Environment.TRANSFORM, store=TransientStore())


@pytest.fixture
def sample_rows():
    """Transfer log rows with mixed units."""
    return [
        {"host": "a", "size": "10MB", "time": "500ms"},
        {"host": "b", "size": "5120KB", "time": "3s"},
        {"host": "c", "size": "0.015GB", "time": "0.5m"},
    ]
