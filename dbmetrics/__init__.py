# /dbmetrics/__init__.py
from .observability.timing import (
    DEFAULT_NAME,
    NAME_OPTION,
    OperationContext,
    TimingContext,
    attach,
    read,
    with_name,
)
from .database.callbacks import (
    ActionKind,
    CallbackRegistrationError,
    InvalidEngineError,
    Operation,
    callbacks_for,
)
from .observability.labels import METRIC_LABELS, default_label_fn
from .observability.sinks import DEFAULT_BUCKETS, HistogramSink
from .observability.db_metrics import PLUGIN_NAME, DBMetrics, init_db_metrics
from .observability.metrics import METRIC_NAME, default
from .configs.log_config import setup_logging

__all__ = [
    "DEFAULT_NAME", "NAME_OPTION", "OperationContext", "TimingContext",
    "attach", "read", "with_name",
    "ActionKind", "CallbackRegistrationError", "InvalidEngineError", "Operation", "callbacks_for",
    "METRIC_LABELS", "default_label_fn",
    "DEFAULT_BUCKETS", "HistogramSink",
    "PLUGIN_NAME", "DBMetrics", "init_db_metrics",
    "METRIC_NAME", "default",
    "setup_logging",
]
