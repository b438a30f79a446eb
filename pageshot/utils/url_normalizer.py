"""URL normalization for incoming capture requests.

Requests arrive as loosely formatted user input ("example.com",
"HTTPS://Example.com/path"). This module turns them into absolute http(s)
URLs the browser can navigate to, rejecting anything else up front.
"""

import re
from typing import Optional
from urllib.parse import parse_qs, urlparse, urlunparse


class URLNormalizationError(Exception):
    """Raised when URL normalization fails."""
    pass


ALLOWED_SCHEMES = ('http', 'https')

# Only a leading scheme counts; URLs nested in the path or query do not.
SCHEME_PREFIX_RE = re.compile(r'^[a-z][a-z0-9+.-]*://', re.IGNORECASE)


def ensure_scheme(url: str) -> str:
    """Prepend ``http://`` when the URL carries no scheme at all.

    Example:
        >>> ensure_scheme("example.com/page")
        "http://example.com/page"
    """
    if SCHEME_PREFIX_RE.match(url):
        return url
    if url.startswith('//'):
        return f"http:{url}"
    return f"http://{url}"


def normalize(url: str) -> str:
    """Normalize a request URL.

    Args:
        url: Raw URL as provided by the caller

    Returns:
        The normalized URL string

    Raises:
        URLNormalizationError: If the URL cannot be normalized

    Example:
        >>> normalize("Example.COM/Path?q=1#top")
        "http://example.com/Path?q=1#top"
    """
    if not url or not isinstance(url, str):
        raise URLNormalizationError("URL must be a non-empty string")

    url = url.strip()
    if not url:
        raise URLNormalizationError("URL cannot be empty or whitespace only")

    url = ensure_scheme(url)

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise URLNormalizationError(f"Failed to parse URL '{url}': {e}")

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise URLNormalizationError(f"Unsupported URL scheme: {scheme}")

    if not parsed.netloc or not parsed.hostname:
        raise URLNormalizationError(f"URL missing host: {url}")

    try:
        port = parsed.port
    except ValueError as e:
        raise URLNormalizationError(f"Invalid port in URL '{url}': {e}")

    netloc = parsed.netloc
    host = parsed.hostname
    try:
        # Convert internationalized domain to punycode
        ascii_host = host.encode('idna').decode('ascii')
    except UnicodeError:
        raise URLNormalizationError(f"Invalid Unicode in hostname: {host}")

    if '@' in netloc:
        userinfo = netloc.rsplit('@', 1)[0]
        netloc = f"{userinfo}@{ascii_host}"
    else:
        netloc = ascii_host
    if port is not None:
        netloc = f"{netloc}:{port}"

    path = parsed.path or '/'
    return urlunparse((scheme, netloc, path, parsed.params, parsed.query, parsed.fragment))


def get_query_param(url: str, name: str) -> Optional[str]:
    """Return the first value of a query parameter, or None."""
    try:
        values = parse_qs(urlparse(url).query).get(name)
    except ValueError:
        return None
    return values[0] if values else None


def get_hostname(url: str) -> str:
    """Lowercased hostname of a URL, empty string when unparseable."""
    try:
        return (urlparse(url).hostname or '').lower()
    except ValueError:
        return ''


def get_origin(url: str) -> str:
    """Scheme and host part of a URL, e.g. ``https://cdn.example.com``."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"
