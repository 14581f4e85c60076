import logging
import sys

from travel_agency.core.config import settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Console-only logging for the whole application (cloud friendly)."""
    root = logging.getLogger("travel_agency")
    root.setLevel((level or settings.LOG_LEVEL).upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # Remove any pre-existing handlers to avoid duplicates on reload
    if root.hasHandlers():
        root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False
