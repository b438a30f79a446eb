"""Logging configuration for pageshot entry points.

Library modules only ever call ``logging.getLogger(__name__)``; handlers and
levels are installed here, by the CLI or by an embedding service.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(mode)s] %(name)s: %(message)s"


class BrowserModeFilter(logging.Filter):
    """Stamps every record with the browser mode (HEADLESS or HEADED)."""

    def __init__(self, headless: bool = True):
        super().__init__()
        self.mode = "HEADLESS" if headless else "HEADED"

    def filter(self, record: logging.LogRecord) -> bool:
        record.mode = self.mode
        return True


def configure_logging(verbose: bool = False, headless: bool = True,
                      stream=None) -> logging.Handler:
    """Install a root handler for the pageshot loggers.

    Args:
        verbose: Log at DEBUG instead of INFO
        headless: Browser mode shown in each log line
        stream: Target stream (defaults to stderr)

    Returns:
        The installed handler
    """
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(BrowserModeFilter(headless))

    root = logging.getLogger("pageshot")
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
    return handler


@contextmanager
def log_timer(label: Optional[str], log: Optional[logging.Logger] = None) -> Iterator[None]:
    """Log the wall time spent inside the block at debug level."""
    if not label:
        yield
        return

    target = log or logger
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        target.debug(f"{label} took {elapsed_ms:.0f}ms")
