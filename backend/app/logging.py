import logging
import sys
from typing import Iterable, Optional


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# litellm (under dspy) and httpx log every oracle request at INFO
QUIET_LOGGERS = ("LiteLLM", "httpx", "httpcore")


def configure_logging(level: str = "INFO", quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level.upper())
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "hearth")
