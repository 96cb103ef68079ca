from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from dbmetrics.database.callbacks import callbacks_for
from dbmetrics.observability.timing import OperationContext


class FakeExecutionContext:
    """Just enough of an ExecutionContext for the cursor listeners."""
    compiled = None
    isddl = False
    execution_options = {}


def test_stripped_context_is_skipped(engine, models, test_metrics, count):
    test_metrics.initialize(engine)

    def strip(op):
        op.context = OperationContext()

    callbacks_for(engine).query().register_before("strip", strip)

    with engine.connect() as conn:
        rows = conn.execute(select(models.items)).all()

    assert rows == []
    assert count("default", "query", "items", "0", "success") == 0

def test_host_error_reaches_caller_unchanged(engine, models, test_metrics):
    test_metrics.initialize(engine)
    seen = []
    callbacks_for(engine).query().register_after("spy", lambda op: seen.append(op.error))

    with engine.connect() as conn:
        with pytest.raises(OperationalError) as excinfo:
            conn.execute(select(models.ghosts)).all()

    assert len(seen) == 1
    assert excinfo.value.orig is seen[0]

def test_missing_after_phase_records_nothing(engine, test_metrics, count):
    test_metrics.initialize(engine)
    pipeline = callbacks_for(engine)
    ctx = FakeExecutionContext()

    pipeline._before_cursor_execute(None, None, "SELECT 1", (), ctx, False)

    assert count("default", "raw", "unknown", "0", "success") == 0

def test_after_phase_runs_once_per_execution(engine, test_metrics, count):
    test_metrics.initialize(engine)
    pipeline = callbacks_for(engine)
    ctx = FakeExecutionContext()

    pipeline._before_cursor_execute(None, None, "SELECT 1", (), ctx, False)
    pipeline._after_cursor_execute(None, None, "SELECT 1", (), ctx, False)
    pipeline._after_cursor_execute(None, None, "SELECT 1", (), ctx, False)
    pipeline._handle_error(SimpleNamespace(execution_context=ctx, original_exception=RuntimeError()))

    assert count("default", "raw", "unknown", "0", "success") == 1
    assert count("default", "raw", "unknown", "0", "error") == 0

def test_after_without_before_is_a_no_op(engine, test_metrics, count):
    test_metrics.initialize(engine)
    pipeline = callbacks_for(engine)

    pipeline._after_cursor_execute(None, None, "SELECT 1", (), FakeExecutionContext(), False)
    pipeline._after_cursor_execute(None, None, "SELECT 1", (), None, False)
    pipeline._handle_error(SimpleNamespace(execution_context=None, original_exception=RuntimeError()))

    for outcome in ("success", "error"):
        assert count("default", "raw", "unknown", "0", outcome) == 0

def test_error_after_before_phase_is_observed_as_error(engine, test_metrics, count):
    test_metrics.initialize(engine)
    pipeline = callbacks_for(engine)
    ctx = FakeExecutionContext()

    pipeline._before_cursor_execute(None, None, "SELECT broken", (), ctx, False)
    pipeline._handle_error(SimpleNamespace(execution_context=ctx, original_exception=RuntimeError("driver")))

    assert count("default", "raw", "unknown", "0", "error") == 1

def test_callbacks_fire_only_for_their_action_kind(engine, test_metrics):
    test_metrics.initialize(engine)
    fired = []
    callbacks_for(engine).create().register_after("create-spy", lambda op: fired.append(op))
    with engine.connect() as conn:
        conn.exec_driver_sql("SELECT 1")
    assert fired == []
