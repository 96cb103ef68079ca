# observability/sinks.py
from typing import Iterable, Optional, Sequence, Tuple

from prometheus_client import CollectorRegistry, Histogram

DEFAULT_BUCKETS = Histogram.DEFAULT_BUCKETS


class HistogramSink:
    """
    Labeled histogram that operation durations are written into.
    `labelnames` must match, in length and order, the values produced by the
    label function paired with this sink; prometheus_client raises ValueError
    on the first observe() otherwise.
    """

    def __init__(self, histogram: Histogram, labelnames: Sequence[str]) -> None:
        self.histogram = histogram
        self.labelnames: Tuple[str, ...] = tuple(labelnames)

    @classmethod
    def create(
        cls,
        name: str,
        documentation: str,
        labelnames: Sequence[str],
        buckets: Iterable[float] = DEFAULT_BUCKETS,
        registry: Optional[CollectorRegistry] = None,
    ) -> "HistogramSink":
        histogram = Histogram(
            name, documentation, list(labelnames),
            buckets=tuple(buckets), registry=registry,
        )
        return cls(histogram, labelnames)

    def observe(self, labels: Sequence[str], seconds: float) -> None:
        self.histogram.labels(*labels).observe(seconds)
