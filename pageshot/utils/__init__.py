"""Shared utilities package."""

from .url_normalizer import (
    URLNormalizationError,
    normalize,
    ensure_scheme,
    get_query_param,
    get_hostname,
    get_origin,
)
from .url_processor import process_url, extract_youtube_video_id

__all__ = [
    'URLNormalizationError',
    'normalize',
    'ensure_scheme',
    'get_query_param',
    'get_hostname',
    'get_origin',
    'process_url',
    'extract_youtube_video_id',
]
