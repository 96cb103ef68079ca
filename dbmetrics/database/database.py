# /dbmetrics/database/database.py
from typing import Optional

import sqlalchemy
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..configs.config import DATABASE_URL
from ..observability.db_metrics import DBMetrics, init_db_metrics


def create_engine(url: Optional[str] = None, metrics: Optional[DBMetrics] = None, **kwargs) -> Engine:
    """create_engine() that comes back instrumented (default metrics unless given)."""
    engine = sqlalchemy.create_engine(url or DATABASE_URL, **kwargs)
    init_db_metrics(engine, metrics)
    return engine


def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)
