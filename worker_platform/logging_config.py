import logging

from worker_platform.config import settings

LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Set up root logging for a worker process."""
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT)
