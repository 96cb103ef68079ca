# /dbmetrics/observability/metrics.py
import logging
import threading
from typing import Optional, Sequence

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse
from prometheus_client import (
    REGISTRY,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Histogram,
    generate_latest,
)
from prometheus_client import multiprocess

from ..configs.config import multiproc_dir
from .db_metrics import DBMetrics
from .labels import METRIC_LABELS, default_label_fn
from .sinks import DEFAULT_BUCKETS, HistogramSink

logger = logging.getLogger(__name__)

METRIC_NAME = "db_operation_duration_seconds"
METRIC_HELP = "Duration of database operations in seconds"

_default: Optional[DBMetrics] = None
_default_lock = threading.Lock()


# -----------------------
# Registry / multiprocess
# -----------------------
def _get_registry() -> CollectorRegistry:
    """
    Registry used for exposition. With PROMETHEUS_MULTIPROC_DIR set, samples
    written by every worker are merged through a MultiProcessCollector;
    otherwise the global REGISTRY is scraped directly.
    """
    if multiproc_dir():
        reg = CollectorRegistry()
        multiprocess.MultiProcessCollector(reg)
        return reg
    return REGISTRY


def _get_or_create_histogram(
    name: str,
    documentation: str,
    labelnames: Sequence[str],
    buckets=DEFAULT_BUCKETS,
    registry: CollectorRegistry = REGISTRY,
) -> Histogram:
    histogram = Histogram(name, documentation, list(labelnames), buckets=buckets, registry=None)
    try:
        registry.register(histogram)
    except ValueError as exc:
        if "Duplicated timeseries" not in str(exc):
            raise
        existing = registry._names_to_collectors.get(name)
        if not isinstance(existing, Histogram):
            raise
        logger.warning("metrics: %s already registered, reusing existing histogram", name)
        return existing
    return histogram


def default() -> DBMetrics:
    """
    Process-wide DBMetrics bound to the global prometheus REGISTRY.
    Built once; later calls return the same instance.

    For a different metric or registry, build a DBMetrics of your own.
    """
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                histogram = _get_or_create_histogram(METRIC_NAME, METRIC_HELP, METRIC_LABELS)
                _default = DBMetrics(HistogramSink(histogram, METRIC_LABELS), default_label_fn)
                logger.info("metrics: default %s histogram ready", METRIC_NAME)
    return _default


router = APIRouter()

# -----------------------
# /metrics endpoint (scrape)
# -----------------------
@router.get("/metrics")
async def metrics():
    return Response(generate_latest(_get_registry()), media_type=CONTENT_TYPE_LATEST)


@router.get("/metrics_json")
def metrics_json():
    families = []
    for mf in _get_registry().collect():
        families.append({
            "name": mf.name,
            "type": mf.type,
            "documentation": getattr(mf, "documentation", "") or "",
            "samples": [
                {
                    "name": s.name,
                    "labels": s.labels,
                    "value": s.value,
                    "timestamp": s.timestamp,
                }
                for s in mf.samples
            ],
        })
    return JSONResponse(content={"status": "success", "data": families})
