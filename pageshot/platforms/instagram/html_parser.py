"""Unstructured fallback: scrape media straight from embed page markup."""

import html as html_lib
import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from ...models.capture import MediaItem, MediaKind
from .models import InstagramPost

logger = logging.getLogger(__name__)

VIDEO_MARKERS = ('data-media-type="GraphVideo"', 'Sprite PlayButtonSprite')

VIDEO_URL_PATTERNS = [
    re.compile(r'"video_url"\s*:\s*"([^"]+\.mp4[^"]*)"'),
    re.compile(r'https://[^"\'\s]*\.cdninstagram\.com[^"\'\s]*\.mp4[^"\'\s]*'),
    re.compile(r'https://scontent[^"\'\s]*\.mp4[^"\'\s]*'),
]


def _unescape_url(url: str) -> str:
    url = url.replace('\\/', '/').replace('\\u0026', '&')
    return html_lib.unescape(url)


def widest_srcset_url(srcset: str) -> Optional[str]:
    """Pick the URL with the largest width descriptor from a srcset."""
    best_url, best_width = None, -1
    for candidate in srcset.split(','):
        parts = candidate.strip().split()
        if not parts:
            continue
        width = 0
        if len(parts) > 1:
            digits = re.match(r'(\d+)', parts[1])
            width = int(digits.group(1)) if digits else 0
        if width > best_width:
            best_url, best_width = parts[0], width
    return best_url


def extract_caption(soup: BeautifulSoup) -> Optional[str]:
    caption_div = soup.select_one('.Caption')
    if not caption_div:
        return None
    for node in caption_div.select('.CaptionUsername, .CaptionComments'):
        node.decompose()
    caption = caption_div.get_text().strip()
    return caption or None


def extract_thumbnail(soup: BeautifulSoup) -> Optional[str]:
    img = soup.select_one('img.EmbeddedMediaImage')
    if not img:
        return None
    url = img.get('src')
    srcset = img.get('srcset')
    if srcset:
        url = widest_srcset_url(srcset) or url
    return url or None


def is_video_post(raw_html: str) -> bool:
    return any(marker in raw_html for marker in VIDEO_MARKERS)


def find_video_url(raw_html: str, soup: BeautifulSoup) -> Optional[str]:
    """Look for a playable MP4 URL, from most to least reliable source."""
    for pattern in VIDEO_URL_PATTERNS:
        match = pattern.search(raw_html)
        if match:
            return _unescape_url(match.group(1) if match.groups() else match.group(0))

    video = soup.select_one('video[src]')
    if video:
        return video['src']

    for source in soup.select('source[src]'):
        if '.mp4' in source['src']:
            return source['src']
    return None


def extract_media_from_html(raw_html: str) -> InstagramPost:
    """Scrape caption, image and (for video posts) video URL from embed markup."""
    soup = BeautifulSoup(raw_html, 'html.parser')
    caption = extract_caption(soup)
    thumbnail = extract_thumbnail(soup)

    video_url = None
    video_post = is_video_post(raw_html)
    if video_post:
        video_url = find_video_url(raw_html, soup)

    media: List[MediaItem] = []
    if video_url and thumbnail:
        logger.debug(f"Found video URL in HTML: {video_url[:120]}")
        media.append(MediaItem(kind=MediaKind.VIDEO, url=video_url, thumbnail=thumbnail))
    elif thumbnail:
        if video_post:
            logger.debug("Video post detected but no video URL in HTML, using thumbnail only")
        media.append(MediaItem(kind=MediaKind.IMAGE, url=thumbnail, thumbnail=thumbnail))

    return InstagramPost(caption=caption, media=media)
