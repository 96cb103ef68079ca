# /dbmetrics/configs/config.py
from types import SimpleNamespace
from dotenv import load_dotenv, find_dotenv
import os

# --- Load .env (doesn't override real env vars) ---
load_dotenv(find_dotenv(filename=".env", usecwd=True), override=False)

# --- tiny env helper ---
def env(name, default=None, *, required=False, cast=str):
    v = os.getenv(name, default)
    if required and (v is None or v == ""):
        raise RuntimeError(f"{name} is required but missing")
    if v is None:
        return None
    if cast is bool:
        return str(v).lower() in {"1", "true", "yes", "on"}
    if cast is int:
        return int(v)
    return v  # str

# ---------- database ----------
DATABASE_URL = env("DATABASE_URL", "sqlite+pysqlite:///:memory:")

# ---------- metrics ----------
DB_METRICS_ENABLED       = env("DB_METRICS_ENABLED", True, cast=bool)
PROMETHEUS_MULTIPROC_DIR = env("PROMETHEUS_MULTIPROC_DIR")

# ---------- logging ----------
LOG_LEVEL = env("LOG_LEVEL", "INFO")
LOG_FILE  = env("LOG_FILE")  # stderr when unset


def metrics_enabled() -> bool:
    """Re-read DB_METRICS_ENABLED so tests and late env changes are honoured."""
    return env("DB_METRICS_ENABLED", True, cast=bool)


def multiproc_dir():
    return env("PROMETHEUS_MULTIPROC_DIR") or None

# ---------- Pretty namespaces for simple imports ----------
config = SimpleNamespace(
    DATABASE_URL=DATABASE_URL,
    DB_METRICS_ENABLED=DB_METRICS_ENABLED,
    PROMETHEUS_MULTIPROC_DIR=PROMETHEUS_MULTIPROC_DIR,
    env=env,
)


__all__ = ["config", "env", "metrics_enabled", "multiproc_dir"]
