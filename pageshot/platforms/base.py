"""Shared contract for platform media extractors.

Each extractor is an ordered list of strategies. A strategy returns data on
success or None to let the next one try; the first success wins.
"""

import logging
from typing import Awaitable, Callable, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

Strategy = Tuple[str, Callable[..., Awaitable[Optional[T]]]]


class ExtractionOutcome(Generic[T]):
    """Uniform success/failure result of an extraction."""

    def __init__(self, success: bool, data: Optional[T] = None,
                 error: Optional[str] = None, method: Optional[str] = None):
        self.success = success
        self.data = data
        self.error = error
        self.method = method

    @classmethod
    def ok(cls, data: T, method: str) -> 'ExtractionOutcome[T]':
        return cls(True, data=data, method=method)

    @classmethod
    def fail(cls, error: str, method: Optional[str] = None, data: Optional[T] = None) -> 'ExtractionOutcome[T]':
        return cls(False, data=data, error=error, method=method)

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        if self.success:
            return f"ExtractionOutcome(success=True, method={self.method!r})"
        return f"ExtractionOutcome(success=False, error={self.error!r})"


async def run_strategies(strategies: List[Strategy], *args, **kwargs) -> ExtractionOutcome:
    """Try each strategy in order and return the first non-empty result.

    Exceptions propagate; a strategy signals "not applicable" by returning None.
    """
    for name, strategy in strategies:
        logger.debug(f"Trying extraction strategy: {name}")
        data = await strategy(*args, **kwargs)
        if data is not None:
            logger.debug(f"Extraction strategy {name} succeeded")
            return ExtractionOutcome.ok(data, method=name)

    tried = ", ".join(name for name, _ in strategies)
    return ExtractionOutcome.fail(f"No strategy produced a result (tried: {tried})")
