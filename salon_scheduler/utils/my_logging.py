# salon_scheduler/utils/my_logging.py
"""Logging configuration"""
import logging
import sys
from salon_scheduler.config.settings import get_settings

NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic",
    "celery",
    "kombu",
    "httpx",
    "uvicorn.access",
)


def setup_logging(verbose: bool = True) -> None:
    """Configure application logging from LOG_LEVEL"""
    settings = get_settings()

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO) if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    if not verbose:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.ERROR)
