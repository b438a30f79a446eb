"""Rewrites for URLs that are better captured through a different resource."""

import logging
import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

logger = logging.getLogger(__name__)

YOUTUBE_THUMBNAIL_URL = "https://img.youtube.com/vi"

_YOUTUBE_HOSTS = {
    'youtube.com',
    'www.youtube.com',
    'm.youtube.com',
    'music.youtube.com',
    'youtube-nocookie.com',
    'www.youtube-nocookie.com',
}
_YOUTUBE_PATH_ID = re.compile(r'^/(?:embed|shorts|live|v)/([\w-]{11})')
_YOUTUBE_ID = re.compile(r'^[\w-]{11}$')


def extract_youtube_video_id(url: str) -> Optional[str]:
    """Extract the 11 character video id from a YouTube URL.

    Supports watch, short-link (youtu.be), embed, shorts and live URLs.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    host = (parsed.hostname or '').lower()

    if host == 'youtu.be':
        candidate = parsed.path.lstrip('/').split('/')[0]
        return candidate if _YOUTUBE_ID.match(candidate) else None

    if host not in _YOUTUBE_HOSTS:
        return None

    if parsed.path == '/watch':
        candidate = parse_qs(parsed.query).get('v', [''])[0]
        return candidate if _YOUTUBE_ID.match(candidate) else None

    match = _YOUTUBE_PATH_ID.match(parsed.path)
    return match.group(1) if match else None


def process_url(url: str) -> str:
    """Return the URL that should actually be captured.

    YouTube video pages are swapped for their max resolution thumbnail,
    everything else is returned unchanged.
    """
    video_id = extract_youtube_video_id(url)
    if video_id:
        logger.info(f"YouTube URL detected, using thumbnail for video {video_id}")
        return f"{YOUTUBE_THUMBNAIL_URL}/{video_id}/maxresdefault.jpg"
    return url
