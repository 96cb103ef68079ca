import os
import logging
from typing import Optional

from .config import LOG_LEVEL, LOG_FILE

LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Optional[str] = None, filename: Optional[str] = None) -> None:
    """
    Configure root logging with the project format.
    Writes to `filename` (or LOG_FILE) when given, stderr otherwise.
    """
    level = (level or LOG_LEVEL or "INFO").upper()
    filename = filename or LOG_FILE

    kwargs = {}
    if filename:
        log_dir = os.path.dirname(filename)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        kwargs["filename"] = filename

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        force=True,  # ensure config applies even if uvicorn/etc touched logging
        **kwargs,
    )
