"""X/Twitter URL parsing.

Supported forms::

    https://twitter.com/<user>/status/<id>
    https://x.com/<user>/status/<id>
    https://twitter.com/i/web/status/<id>
    https://mobile.twitter.com/<user>/status/<id>
"""

import re
from typing import Optional
from urllib.parse import urlparse

TWITTER_DOMAINS = (
    "twitter.com",
    "x.com",
    "www.twitter.com",
    "www.x.com",
    "mobile.twitter.com",
    "mobile.x.com",
)

_STATUS_RE = re.compile(r'/status/(\d+)')
_WEB_STATUS_RE = re.compile(r'/i/web/status/(\d+)')
_USERNAME_RE = re.compile(r'^/([^/]+)/status/')
_TWEET_ID_RE = re.compile(r'^\d{10,20}$')


def is_twitter_domain(url: str) -> bool:
    try:
        host = (urlparse(url).hostname or '').lower()
    except ValueError:
        return False
    return host in TWITTER_DOMAINS


def is_valid_tweet_id(tweet_id: str) -> bool:
    """Tweet ids are numeric snowflakes, 10 to 20 digits long."""
    return bool(_TWEET_ID_RE.match(tweet_id or ''))


def extract_tweet_id(url: str) -> Optional[str]:
    """Extract the tweet id from a status URL.

    Only https URLs on a known X/Twitter host are accepted.

    Example:
        >>> extract_tweet_id("https://x.com/user/status/1234567890123")
        "1234567890123"
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    if parsed.scheme != 'https' or not is_twitter_domain(url):
        return None

    match = _STATUS_RE.search(parsed.path) or _WEB_STATUS_RE.search(parsed.path)
    if not match:
        return None

    tweet_id = match.group(1)
    return tweet_id if is_valid_tweet_id(tweet_id) else None


def extract_username(url: str) -> Optional[str]:
    if not is_twitter_domain(url):
        return None
    match = _USERNAME_RE.match(urlparse(url).path)
    if match and match.group(1) != 'i':
        return match.group(1)
    return None


def is_tweet_url(url: str) -> bool:
    return extract_tweet_id(url) is not None


def build_status_url(tweet_id: str, domain: str = "x.com", username: Optional[str] = None) -> str:
    """Build a canonical status URL for a tweet id."""
    if domain not in TWITTER_DOMAINS:
        raise ValueError(f"Not a Twitter domain: {domain}")
    if username:
        return f"https://{domain}/{username}/status/{tweet_id}"
    return f"https://{domain}/i/web/status/{tweet_id}"
