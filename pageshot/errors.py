"""Exception hierarchy for the capture pipeline.

Components downgrade most failures locally. Only launch failures, exhausted
retries and an empty handler chain are expected to reach the caller.
"""

from typing import Optional


class PageshotError(Exception):
    """Base class for all pageshot errors."""
    pass


class InvalidRequestError(PageshotError):
    """Raised when a capture request cannot be built from the given input."""
    pass


class LaunchFailure(PageshotError):
    """Raised when the browser process could not be started."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Browser launch failed: {message}")
        self.cause = cause


class NavigationTimeout(PageshotError):
    """Navigation did not settle within its budget.

    Logged as a warning; capture proceeds on whatever has rendered.
    """

    def __init__(self, url: str, timeout_ms: int):
        super().__init__(f"Navigation to {url} timed out after {timeout_ms}ms")
        self.url = url
        self.timeout_ms = timeout_ms


class ChallengeUnresolved(PageshotError):
    """An interstitial challenge was detected but not cleared in time."""
    pass


class CaptureFailure(PageshotError):
    """A single screenshot level failed."""
    pass


class ExtractionError(PageshotError):
    """Media extraction for a platform failed.

    Attributes:
        platform: Platform the extraction was running for
        recoverable: Whether the failure should degrade to an empty result
    """

    def __init__(self, message: str, platform: str = "", recoverable: bool = False):
        super().__init__(message)
        self.platform = platform
        self.recoverable = recoverable


class TransientProtocolError(PageshotError):
    """Browser protocol or connection hiccup that is safe to retry."""
    pass


class AllHandlersFailed(PageshotError):
    """Every handler in a dispatch chain declined to produce a result."""

    def __init__(self, url: str):
        super().__init__(f"Screenshot capture failed for {url}: no handler produced an image")
        self.url = url
