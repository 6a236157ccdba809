import logging
import sys
from pathlib import Path

import structlog

from .config import settings

SERVICE_NAME = "folio-service"

# Libraries that log per request, per tick or per font lookup at INFO/DEBUG.
_NOISY = ("apscheduler", "matplotlib", "PIL")


def setup_logging(level: str | None = None):
    """JSON lines on stdout; errors also go to LOG_ERROR_FILE when set."""
    level_name = (level or settings.log_level or "INFO").upper()
    log_level = getattr(logging, level_name, logging.INFO)
    error_log_path = (settings.log_error_file or "").strip()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    formatter = logging.Formatter("%(message)s")
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if error_log_path:
        Path(error_log_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(error_log_path)
        file_handler.setLevel(logging.ERROR)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
    )
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME, tz=settings.local_tz)

    for name in _NOISY:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx"):
        logging.getLogger(name).setLevel(log_level)
