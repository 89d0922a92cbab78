"""Process-wide logging setup."""

import logging

from filerag.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root and ``filerag`` loggers."""
    level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("filerag").setLevel(level)
    # LiteLLM is chatty at INFO
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
