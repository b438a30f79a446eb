"""Capture data models package."""

from .capture import (
    SiteKind,
    MediaKind,
    VideoQuality,
    CaptureRequest,
    PageMetadata,
    MediaItem,
    CaptureResult,
    RetryState,
)

__all__ = [
    # Enums
    'SiteKind',
    'MediaKind',
    'VideoQuality',

    # Request / result models
    'CaptureRequest',
    'PageMetadata',
    'MediaItem',
    'CaptureResult',
    'RetryState',
]
