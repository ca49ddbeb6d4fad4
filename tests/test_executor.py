"""
Tests for RecipePipeline and the Arrow batch helpers.
"""

import pyarrow as pa
import pytest

from recipekit.dsl.context import Environment
from recipekit.dsl.directive import Directive
from recipekit.dsl.store import TransientVariableScope
from recipekit.dsl.tokens import TokenType
from recipekit.dsl.units import ByteSize
from recipekit.dsl.usage import UsageDefinition
from recipekit.exceptions import CompileError, ExecutionError
from recipekit.executor import PipelineState, RecipePipeline, to_arrow, to_rows
from recipekit.recipe.compiler import RecipeCompiler


# =============================================================================
# Test directives
# =============================================================================

class Recorder(Directive):
    """Records what it sees in the context for every batch."""

    NAME = "recorder"

    def __init__(self):
        self.seen = []
        self.destroyed = False

    @classmethod
    def define(cls):
        return UsageDefinition.builder(cls.NAME).build()

    def execute(self, rows, context):
        local = context.store.increment(TransientVariableScope.LOCAL, "recorder.calls")
        total = context.store.increment(TransientVariableScope.GLOBAL, "recorder.calls")
        self.seen.append({
            "rows": len(rows),
            "last": context.is_last,
            "local": local,
            "global": total,
            "properties": dict(context.properties),
        })
        return rows

    def destroy(self):
        self.destroyed = True


class Failing(Directive):
    NAME = "failing"

    def __init__(self, error):
        self.error = error

    @classmethod
    def define(cls):
        return UsageDefinition.builder(cls.NAME).build()

    def execute(self, rows, context):
        raise self.error

    def destroy(self):
        raise RuntimeError("cannot destroy")


class Returning(Directive):
    NAME = "returning-none"

    @classmethod
    def define(cls):
        return UsageDefinition.builder(cls.NAME).build()

    def execute(self, rows, context):
        return None


class Upper(Directive):
    NAME = "upper"

    @classmethod
    def define(cls):
        return UsageDefinition.builder(cls.NAME).define("column", TokenType.COLUMN_NAME).build()

    def initialize(self, args):
        self.column = args.value("column")

    def execute(self, rows, context):
        return [{**row, self.column: row[self.column].upper()} for row in rows]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def pipeline(recorder):
    return RecipePipeline([recorder], environment=Environment.TRANSFORM)


# =============================================================================
# Arrow helpers
# =============================================================================

class TestArrowHelpers:

    def test_to_rows_from_table(self):
        table = pa.table({"a": [1, 2], "b": ["x", "y"]})
        assert to_rows(table) == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]

    def test_to_rows_copies(self):
        batch = [{"a": 1}]
        rows = to_rows(batch)
        rows[0]["a"] = 2
        assert batch[0]["a"] == 1

    def test_to_rows_none(self):
        assert to_rows(None) == []

    def test_to_arrow(self):
        table = to_arrow([{"size": ByteSize("10MB"), "n": 1}])
        assert isinstance(table, pa.Table)
        assert table.column("size").to_pylist() == ["10MB"]
        assert table.column("n").to_pylist() == [1]

    def test_to_arrow_empty(self):
        assert to_arrow([]).num_rows == 0

    def test_to_arrow_passes_tables_through(self):
        table = pa.table({"a": [1]})
        assert to_arrow(table) is table


# =============================================================================
# Pipeline execution
# =============================================================================

class TestRecipePipeline:

    def test_directives_run_in_order(self, registry):
        registry.register(Upper)
        pipeline = RecipePipeline.from_recipe(
            "#pragma version 2.0;\nrename :a :b; upper :b; keep :b",
            registry=registry,
            environment=Environment.TRANSFORM,
        )
        assert pipeline.execute([{"a": "x", "c": 1}]) == [{"b": "X"}]

    def test_from_recipe_raises_first_error(self, registry):
        with pytest.raises(CompileError):
            RecipePipeline.from_recipe("nope :a", registry=registry)

    def test_arrow_batch(self, registry):
        pipeline = RecipePipeline.from_recipe("rename :a :b", registry=registry)
        assert pipeline.execute(pa.table({"a": [1, 2]})) == [{"b": 1}, {"b": 2}]

    def test_caller_batch_not_mutated(self, registry):
        pipeline = RecipePipeline.from_recipe("parse-as-size :size", registry=registry)
        batch = [{"size": "1KB"}]
        rows = pipeline.execute(batch)
        assert rows[0]["size"] == ByteSize("1KB")
        assert batch == [{"size": "1KB"}]

    def test_none_result_is_an_error(self):
        pipeline = RecipePipeline([Returning()])
        with pytest.raises(ExecutionError) as info:
            pipeline.execute([{"a": 1}])
        assert info.value.directive == "returning-none"
        assert pipeline.state is PipelineState.FAILED

    def test_local_scope_reset_per_batch(self, pipeline, recorder):
        pipeline.execute([{"a": 1}])
        pipeline.execute([{"a": 2}])
        assert [s["local"] for s in recorder.seen] == [1, 1]
        assert [s["global"] for s in recorder.seen] == [1, 2]
        assert pipeline.batches_processed == 2

    def test_properties_and_last_flag(self, recorder):
        pipeline = RecipePipeline([recorder], environment=Environment.TRANSFORM,
                                  properties={"tenant": "t1"}, name="p1")
        pipeline.execute([])
        pipeline.execute([], is_last=True)
        assert [s["last"] for s in recorder.seen] == [False, True]
        assert recorder.seen[0]["properties"] == {"tenant": "t1"}
        assert recorder.seen[1]["properties"] == {"tenant": "t1", "isLast": "true"}
        assert pipeline.context.name == "p1"

    def test_environment_from_config(self, recorder, monkeypatch):
        monkeypatch.setenv("RECIPEKIT_ENVIRONMENT", "testing")
        pipeline = RecipePipeline([recorder])
        assert pipeline.context.environment is Environment.TESTING

    def test_unresolved_placeholder_rejected(self, compiler):
        compiled = compiler.build(
            "#pragma version 2.0;\n#pragma load-directives upper;\nupper :a"
        ).unwrap()
        with pytest.raises(CompileError) as info:
            RecipePipeline(compiled)
        assert info.value.directive == "upper"

    def test_resolved_recipe_runs(self, compiler):
        compiled = compiler.build(
            "#pragma version 2.0;\n#pragma load-directives upper;\nupper :a"
        ).unwrap()
        pipeline = RecipePipeline(compiled.resolve({"upper": Upper}))
        assert pipeline.execute([{"a": "x"}]) == [{"a": "X"}]

    def test_pipelines_do_not_share_state(self):
        compiler = RecipeCompiler(migrate_legacy=True, load_directives=[])
        recipe = "aggregate-stats :s :t size time"
        first = RecipePipeline(compiler.build(recipe).unwrap(), environment=Environment.TRANSFORM)
        second = RecipePipeline(compiler.build(recipe).unwrap(), environment=Environment.TRANSFORM)
        first.execute([{"s": "1MB", "t": "1s"}])
        assert second.execute([], is_last=True) == [{"size": 0.0, "time": 0.0}]


class TestPipelineState:

    def test_last_batch_finishes(self, pipeline):
        pipeline.execute([], is_last=True)
        assert pipeline.state is PipelineState.FINISHED
        with pytest.raises(ExecutionError):
            pipeline.execute([])

    def test_testing_environment_keeps_running(self, recorder):
        pipeline = RecipePipeline([recorder], environment=Environment.TESTING)
        pipeline.execute([{"a": 1}])
        pipeline.execute([{"a": 2}], is_last=True)
        pipeline.execute([{"a": 3}])
        assert pipeline.state is PipelineState.READY
        assert all(s["last"] for s in recorder.seen)

    def test_unexpected_error_is_wrapped(self):
        pipeline = RecipePipeline([Failing(KeyError("x"))])
        with pytest.raises(ExecutionError) as info:
            pipeline.execute([{"a": 1}])
        assert info.value.directive == "failing"
        assert isinstance(info.value.__cause__, KeyError)
        assert pipeline.state is PipelineState.FAILED
        with pytest.raises(ExecutionError):
            pipeline.execute([])

    def test_recipe_error_gets_directive_name(self):
        pipeline = RecipePipeline([Failing(ExecutionError("bad cell"))])
        with pytest.raises(ExecutionError) as info:
            pipeline.execute([])
        assert info.value.directive == "failing"

    def test_run_returns_result(self, pipeline):
        assert pipeline.run([{"a": 1}]).unwrap() == [{"a": 1}]
        failing = RecipePipeline([Failing(ExecutionError("bad"))])
        result = failing.run([])
        assert result.is_err()
        assert isinstance(result.error, ExecutionError)

    def test_close_destroys_directives(self, pipeline, recorder):
        pipeline.execute([{"a": 1}])
        pipeline.close()
        assert recorder.destroyed
        assert pipeline.state is PipelineState.CLOSED
        assert pipeline.store.names(TransientVariableScope.GLOBAL) == []
        pipeline.close()
        with pytest.raises(ExecutionError):
            pipeline.execute([])

    def test_close_survives_destroy_errors(self, recorder):
        pipeline = RecipePipeline([Failing(ValueError()), recorder])
        pipeline.close()
        assert recorder.destroyed

    def test_context_manager(self, recorder):
        with RecipePipeline([recorder]) as pipeline:
            pipeline.execute([])
        assert recorder.destroyed
        assert pipeline.state is PipelineState.CLOSED

    def test_repr(self, pipeline):
        assert "recorder" in repr(pipeline)


class TestProcess:

    def test_marks_final_batch(self, pipeline, recorder):
        output = pipeline.process([[{"a": 1}], [{"a": 2}, {"a": 3}], [{"a": 4}]])
        assert len(output) == 4
        assert [s["last"] for s in recorder.seen] == [False, False, True]
        assert pipeline.state is PipelineState.FINISHED

    def test_empty_stream(self, pipeline, recorder):
        assert pipeline.process([]) == []
        assert recorder.seen[0]["last"]
        assert recorder.seen[0]["rows"] == 0

    def test_generator_input(self, pipeline, recorder):
        pipeline.process(([{"a": i}] for i in range(3)))
        assert [s["last"] for s in recorder.seen] == [False, False, True]
