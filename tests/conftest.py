# tests/conftest.py
import pytest
import sys
from pathlib import Path
from types import SimpleNamespace

from prometheus_client import CollectorRegistry
from sqlalchemy import ForeignKey, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# repo root = folder that contains both `dbmetrics/` and `tests/`
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from dbmetrics.observability.db_metrics import DBMetrics  # noqa: E402
from dbmetrics.observability.labels import METRIC_LABELS  # noqa: E402
from dbmetrics.observability.sinks import HistogramSink  # noqa: E402

TEST_METRIC = "test_db_operation_duration_seconds"


class Base(DeclarativeBase):
    pass


class Item(Base):
    __tablename__ = "items"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50))


class Person(Base):
    __tablename__ = "people"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50))
    age: Mapped[int]


class FavoriteColor(Base):
    __tablename__ = "favorite_colors"
    id: Mapped[int] = mapped_column(primary_key=True)
    person_id: Mapped[int] = mapped_column(ForeignKey("people.id"))
    name: Mapped[str] = mapped_column(String(50))


class Ghost(Base):
    """Mapped but never created: every statement against it fails."""
    __tablename__ = "ghosts"
    id: Mapped[int] = mapped_column(primary_key=True)


def sample_count(registry, labels, metric=TEST_METRIC, labelnames=METRIC_LABELS) -> float:
    value = registry.get_sample_value(f"{metric}_count", dict(zip(labelnames, labels)))
    return value or 0.0


@pytest.fixture()
def engine(tmp_path):
    eng = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'metrics.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(
        eng, tables=[Item.__table__, Person.__table__, FavoriteColor.__table__]
    )
    yield eng
    eng.dispose()


@pytest.fixture()
def models():
    return SimpleNamespace(
        Item=Item, Person=Person, FavoriteColor=FavoriteColor, Ghost=Ghost,
        items=Item.__table__, people=Person.__table__,
        favorite_colors=FavoriteColor.__table__, ghosts=Ghost.__table__,
    )


@pytest.fixture()
def registry():
    return CollectorRegistry()


@pytest.fixture()
def test_metrics(registry):
    """DBMetrics on a private registry, so counts start at zero in every test."""
    sink = HistogramSink.create(TEST_METRIC, "Test DB operation duration", METRIC_LABELS, registry=registry)
    return DBMetrics(sink, name="db-metrics-test")


@pytest.fixture()
def count(registry):
    def _count(*labels, metric=TEST_METRIC, labelnames=METRIC_LABELS, reg=None):
        return sample_count(reg or registry, labels, metric=metric, labelnames=labelnames)
    return _count


class FakeClock:
    """Stand-in for perf_counter; advance it by hand."""
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock(monkeypatch):
    from dbmetrics.observability import timing
    fake = FakeClock()
    monkeypatch.setattr(timing, "perf_counter", fake)
    return fake
