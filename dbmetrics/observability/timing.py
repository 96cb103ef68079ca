# observability/timing.py
from time import perf_counter
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_NAME = "default"

# SQLAlchemy execution option carrying a per-statement metric name
NAME_OPTION = "metrics_name"

_current_name: ContextVar[Optional[str]] = ContextVar("dbmetrics_name", default=None)


class TimingContext:
    """Start instant and operation name of one in-flight operation."""

    __slots__ = ("_name", "start_time")

    def __init__(self, name: str = DEFAULT_NAME, start_time: Optional[float] = None):
        self._name = name or DEFAULT_NAME
        self.start_time = perf_counter() if start_time is None else start_time

    @property
    def name(self) -> str:
        return self._name

    def restart(self) -> None:
        self.start_time = perf_counter()

    def elapsed(self) -> float:
        return perf_counter() - self.start_time

    def __repr__(self) -> str:
        return f"TimingContext(name={self._name!r}, start_time={self.start_time!r})"


@dataclass(frozen=True)
class OperationContext:
    """Per-invocation context value. Holds at most one TimingContext."""
    timing: Optional[TimingContext] = None


def attach(ctx: OperationContext, name: str = DEFAULT_NAME) -> OperationContext:
    """Return a copy of `ctx` carrying a fresh TimingContext named `name`."""
    return replace(ctx, timing=TimingContext(name))


def read(ctx) -> Optional[TimingContext]:
    timing = getattr(ctx, "timing", None)
    return timing if isinstance(timing, TimingContext) else None


def current_name() -> Optional[str]:
    return _current_name.get()


@contextmanager
def with_name(name: str):
    """
    Tag every database operation run inside the block with `name`:

        with with_name("my_update"):
            session.execute(update(Thing).values(name="new name"))

    Works as a decorator too. The value lives in a ContextVar, so threads and
    asyncio tasks each see their own tag.
    """
    token = _current_name.set(name)
    try:
        yield
    finally:
        _current_name.reset(token)


def context_for(options: Optional[Mapping] = None) -> OperationContext:
    """
    Build the OperationContext for one execution. A `metrics_name` execution
    option takes precedence over the ambient `with_name` tag.
    """
    name = (options or {}).get(NAME_OPTION) or _current_name.get()
    ctx = OperationContext()
    return attach(ctx, name) if name else ctx
