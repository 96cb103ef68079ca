# /dbmetrics/database/callbacks.py
from __future__ import annotations
import logging
import threading
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.sql.selectable import AliasedReturnsRows, Join

from ..observability.timing import OperationContext, context_for

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    QUERY = "query"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ROW = "row"
    RAW = "raw"


class InvalidEngineError(ValueError):
    """Callbacks were requested for something that is not a SQLAlchemy Engine."""


class CallbackRegistrationError(RuntimeError):
    """A callback with the same name is already registered on the processor."""


@dataclass
class Operation:
    """Metadata of one cursor execution, handed to every callback."""
    action: ActionKind
    target: str = ""
    joins: int = 0
    context: OperationContext = field(default_factory=OperationContext)
    error: Optional[BaseException] = None
    statement: Optional[str] = None


Callback = Callable[[Operation], None]


class Processor:
    """Named before/after callbacks for one action kind."""

    def __init__(self, kind: ActionKind) -> None:
        self.kind = kind
        self._before: Dict[str, Callback] = {}
        self._after: Dict[str, Callback] = {}
        self._lock = threading.Lock()

    def register_before(self, name: str, fn: Callback) -> None:
        self._register("_before", name, fn)

    def register_after(self, name: str, fn: Callback) -> None:
        self._register("_after", name, fn)

    def _register(self, phase: str, name: str, fn: Callback) -> None:
        with self._lock:
            table = getattr(self, phase)
            if name in table:
                raise CallbackRegistrationError(
                    f"callback {name!r} already registered for {self.kind.value}"
                )
            # copy-on-write so dispatch never iterates a dict being mutated
            setattr(self, phase, {**table, name: fn})

    def remove(self, name: str) -> None:
        with self._lock:
            self._before = {k: v for k, v in self._before.items() if k != name}
            self._after = {k: v for k, v in self._after.items() if k != name}

    def run_before(self, operation: Operation) -> None:
        for fn in self._before.values():
            fn(operation)

    def run_after(self, operation: Operation) -> None:
        for fn in self._after.values():
            fn(operation)


def classify(context) -> ActionKind:
    if getattr(context, "compiled", None) is None or getattr(context, "isddl", False):
        return ActionKind.RAW
    if context.isinsert:
        return ActionKind.CREATE
    if context.isupdate:
        return ActionKind.UPDATE
    if context.isdelete:
        return ActionKind.DELETE
    if getattr(context, "is_text", False):
        return ActionKind.ROW
    return ActionKind.QUERY


def _walk_from(from_) -> Tuple[str, int]:
    if isinstance(from_, Join):
        name, left = _walk_from(from_.left)
        _, right = _walk_from(from_.right)
        return name, left + right + 1
    if isinstance(from_, AliasedReturnsRows):
        # alias/subquery names may be anonymous labels; report what they wrap
        element = from_.element
        if hasattr(element, "get_final_froms"):
            return describe(element)[0], 0
        return _walk_from(element)[0], 0
    return str(getattr(from_, "name", None) or ""), 0


def describe(statement) -> Tuple[str, int]:
    """Return (target table name, join count) of a compiled statement."""
    if statement is None:
        return "", 0
    table = getattr(statement, "table", None)  # insert/update/delete
    if table is not None:
        return str(getattr(table, "name", None) or ""), 0
    final_froms = getattr(statement, "get_final_froms", None)
    if final_froms is None:
        return "", 0
    froms = final_froms()
    if not froms:
        return "", 0
    return _walk_from(froms[0])


class Callbacks:
    """
    Before/after callback pipeline of one Engine, one Processor per ActionKind.
    Driven by the engine's cursor events; an Operation lives in a side table
    keyed by its ExecutionContext between the before and after phases.
    """

    def __init__(self, engine: Engine) -> None:
        self._processors = {kind: Processor(kind) for kind in ActionKind}
        self._operations: "weakref.WeakKeyDictionary" = weakref.WeakKeyDictionary()

        event.listen(engine, "before_cursor_execute", self._before_cursor_execute)
        event.listen(engine, "after_cursor_execute", self._after_cursor_execute)
        event.listen(engine, "handle_error", self._handle_error)

    def processor(self, kind: ActionKind) -> Processor:
        return self._processors[ActionKind(kind)]

    def query(self) -> Processor:  return self._processors[ActionKind.QUERY]
    def create(self) -> Processor: return self._processors[ActionKind.CREATE]
    def update(self) -> Processor: return self._processors[ActionKind.UPDATE]
    def delete(self) -> Processor: return self._processors[ActionKind.DELETE]
    def row(self) -> Processor:    return self._processors[ActionKind.ROW]
    def raw(self) -> Processor:    return self._processors[ActionKind.RAW]

    def _before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        if context is None:
            return
        kind = classify(context)
        compiled = getattr(context, "compiled", None)
        target, joins = describe(getattr(compiled, "statement", None))
        operation = Operation(
            action=kind,
            target=target,
            joins=joins,
            context=context_for(getattr(context, "execution_options", None)),
            statement=statement,
        )
        self._operations[context] = operation
        self._processors[kind].run_before(operation)

    def _after_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        if context is None:
            return
        operation = self._operations.pop(context, None)
        if operation is None:
            return
        self._processors[operation.action].run_after(operation)

    def _handle_error(self, exception_context):
        context = exception_context.execution_context
        if context is None:
            return
        operation = self._operations.pop(context, None)
        if operation is None:
            return
        operation.error = exception_context.original_exception
        self._processors[operation.action].run_after(operation)


_pipelines: "weakref.WeakKeyDictionary[Engine, Callbacks]" = weakref.WeakKeyDictionary()
_pipelines_lock = threading.Lock()


def callbacks_for(engine) -> Callbacks:
    """Return the engine's callback pipeline, creating it on first use."""
    engine = getattr(engine, "sync_engine", engine)  # AsyncEngine
    if not isinstance(engine, Engine):
        raise InvalidEngineError(f"expected a SQLAlchemy Engine, got {type(engine).__name__}")

    pipeline = _pipelines.get(engine)
    if pipeline is None:
        with _pipelines_lock:
            pipeline = _pipelines.get(engine)
            if pipeline is None:
                pipeline = Callbacks(engine)
                _pipelines[engine] = pipeline
                logger.info("callbacks: installed cursor listeners on %s", engine.url.render_as_string())
    return pipeline
