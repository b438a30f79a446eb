"""pageshot: screenshots, metadata and media URLs for arbitrary web URLs.

Usage:
    from pageshot import CaptureRequest, create_capture_engine

    engine = create_capture_engine()
    result = await engine.capture(CaptureRequest.from_raw("example.com"))
"""

__version__ = "1.0.0"

from .capture.engine import CaptureEngine, CaptureEngineConfig, capture_sync, create_capture_engine
from .errors import (
    AllHandlersFailed,
    ExtractionError,
    InvalidRequestError,
    LaunchFailure,
    PageshotError,
)
from .models.capture import CaptureRequest, CaptureResult, MediaItem, PageMetadata, SiteKind

__all__ = [
    '__version__',
    'CaptureEngine',
    'CaptureEngineConfig',
    'CaptureRequest',
    'CaptureResult',
    'MediaItem',
    'PageMetadata',
    'SiteKind',
    'PageshotError',
    'InvalidRequestError',
    'LaunchFailure',
    'ExtractionError',
    'AllHandlersFailed',
    'capture_sync',
    'create_capture_engine',
]
