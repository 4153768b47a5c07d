"""Timing spans for planning runs and oracle calls."""

import time
from contextlib import contextmanager
from typing import Iterator

from app.logging import get_logger

logger = get_logger(__name__)

_TIMING_PREFIX = "[TIMING]"


def format_duration(ms: int) -> str:
    """12500 -> '12.5s', 750 -> '750ms'."""
    if ms >= 1000:
        return f"{ms / 1000:.1f}s"
    return f"{ms}ms"


class Span:
    def __init__(self, name: str):
        self.name = name
        self.started = time.perf_counter()
        self.elapsed_ms: int | None = None

    def stop(self) -> int:
        self.elapsed_ms = int((time.perf_counter() - self.started) * 1000)
        return self.elapsed_ms


@contextmanager
def time_span(name: str, **extra: object) -> Iterator[Span]:
    """Log '[TIMING] <name> elapsed_ms=... (...) key=value' when the block exits, even on error."""
    span = Span(name)
    try:
        yield span
    finally:
        elapsed = span.stop()
        parts = [f"elapsed_ms={elapsed}", f"({format_duration(elapsed)})"] + [f"{k}={v}" for k, v in extra.items()]
        logger.info("%s %s %s", _TIMING_PREFIX, name, " ".join(parts))
