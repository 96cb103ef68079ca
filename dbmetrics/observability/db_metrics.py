# observability/db_metrics.py
import logging
from typing import List, Optional, Tuple

from ..configs.config import metrics_enabled
from ..database.callbacks import (
    ActionKind,
    CallbackRegistrationError,
    Operation,
    Processor,
    callbacks_for,
)
from .labels import LabelFn, default_label_fn
from .sinks import HistogramSink
from .timing import DEFAULT_NAME, attach, read

logger = logging.getLogger(__name__)

PLUGIN_NAME = "db-metrics"


class DBMetrics:
    """
    Times every cursor execution of an engine and records it into `sink`
    with labels from `label_fn`.

    A custom instance needs its own `name` to sit next to the default one on
    the same engine:

        custom = DBMetrics(
            HistogramSink.create("db_custom_seconds", "Custom", ["name"]),
            label_fn=lambda op, action: [read(op.context).name],
            name="db-metrics-custom",
        )
        custom.initialize(engine)
    """

    def __init__(self, sink: HistogramSink, label_fn: LabelFn = default_label_fn, name: str = PLUGIN_NAME):
        self.sink = sink
        self.label_fn = label_fn
        self.name = name

    def start(self, operation: Operation) -> None:
        timing = read(operation.context)
        if timing is None:
            operation.context = attach(operation.context, DEFAULT_NAME)
        else:
            timing.restart()

    def observe(self, operation: Operation, action: ActionKind) -> None:
        timing = read(operation.context)
        if timing is None:
            logger.debug("%s: no timing context for %s on %r, skipping: %s", self.name, action.value, operation.target, operation.statement)
            return
        self.sink.observe(self.label_fn(operation, action), timing.elapsed())

    def _observer(self, action: ActionKind):
        def _observe(operation: Operation) -> None:
            self.observe(operation, action)
        return _observe

    def initialize(self, engine) -> "DBMetrics":
        """
        Register one start and one observe callback per action kind.
        Either all of them are registered or, on failure, none stay behind.
        """
        pipeline = callbacks_for(engine)
        registered: List[Tuple[Processor, str]] = []
        try:
            for kind in ActionKind:
                processor = pipeline.processor(kind)
                start_name = f"{self.name}:start"
                processor.register_before(start_name, self.start)
                registered.append((processor, start_name))
                observe_name = f"{self.name}:{kind.value}"
                processor.register_after(observe_name, self._observer(kind))
                registered.append((processor, observe_name))
        except CallbackRegistrationError:
            for processor, cb_name in registered:
                processor.remove(cb_name)
            logger.error("%s: callback registration failed, rolled back %d callbacks", self.name, len(registered))
            raise
        logger.info("%s: instrumenting %d action kinds", self.name, len(ActionKind))
        return self


def init_db_metrics(engine, metrics: Optional[DBMetrics] = None) -> Optional[DBMetrics]:
    """Attach `metrics` (the process-wide default when omitted) to `engine`."""
    if not metrics_enabled():
        logger.info("init_db_metrics: DB_METRICS_ENABLED is off, engine left uninstrumented")
        return None
    if metrics is None:
        from .metrics import default
        metrics = default()
    return metrics.initialize(engine)
