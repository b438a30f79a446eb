"""Instagram URL helpers."""

import re
from typing import Optional
from urllib.parse import urlparse

INSTAGRAM_HOSTS = ("instagram.com", "www.instagram.com", "m.instagram.com")
EMBED_URL_TEMPLATE = "https://www.instagram.com/p/{shortcode}/embed/captioned/"

_SHORTCODE_RE = re.compile(r'(?:p|reel|tv)/([\w-]+)')


def is_instagram_domain(url: str) -> bool:
    try:
        host = (urlparse(url).hostname or '').lower()
    except ValueError:
        return False
    return host in INSTAGRAM_HOSTS


def extract_shortcode(url: str) -> Optional[str]:
    """Post shortcode from a /p/, /reel/ or /tv/ URL."""
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    match = _SHORTCODE_RE.search(path)
    return match.group(1) if match else None


def is_instagram_post_url(url: str) -> bool:
    return is_instagram_domain(url) and extract_shortcode(url) is not None


def build_embed_url(shortcode: str) -> str:
    return EMBED_URL_TEMPLATE.format(shortcode=shortcode)


def truncate_title(title: Optional[str]) -> Optional[str]:
    """Cut an Instagram page title at its first colon.

    Titles look like ``"Jane Doe on Instagram: <full caption>"``; the caption
    is already available separately.
    """
    if not title:
        return None
    colon = title.find(':')
    return title[:colon].strip() if colon > 0 else title
