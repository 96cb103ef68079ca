# observability/labels.py
from typing import Callable, List, Sequence

from ..database.callbacks import ActionKind, Operation
from .timing import DEFAULT_NAME, read

LABEL_NAME    = "name"
LABEL_ACTION  = "action"
LABEL_MODEL   = "model"
LABEL_JOINS   = "joins"
LABEL_OUTCOME = "outcome"

METRIC_LABELS = (LABEL_NAME, LABEL_ACTION, LABEL_MODEL, LABEL_JOINS, LABEL_OUTCOME)

OUTCOME_SUCCESS = "success"
OUTCOME_ERROR   = "error"

LabelFn = Callable[[Operation, ActionKind], Sequence[str]]


def default_label_fn(operation: Operation, action: ActionKind) -> List[str]:
    """Label values in METRIC_LABELS order."""
    timing = read(operation.context)
    name = timing.name if timing is not None else DEFAULT_NAME

    model = operation.target or "unknown"
    outcome = OUTCOME_ERROR if operation.error is not None else OUTCOME_SUCCESS

    return [
        name,
        ActionKind(action).value,
        model.lower(),
        str(max(int(operation.joins or 0), 0)),
        outcome,
    ]
