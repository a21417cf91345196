"""Logging setup."""

import logging

from preptrack.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s:\t%(name)s\t%(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=settings.log_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    logging.getLogger("uvicorn").setLevel(settings.log_level)
    # SQL echo is controlled by the engine, keep the sqlalchemy logger quiet
    if not settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
