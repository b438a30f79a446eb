"""Ad, tracker and annoyance blocking backed by compiled filter lists.

Network rules abort matching requests; cosmetic rules (``##selector``) hide
cookie banners and overlays through an injected stylesheet.

The engine is compiled once from remotely hosted filter lists and is
read-only afterwards, so a single instance can be shared by every page of
every session. It is passed around explicitly; there is no module-level
engine.
"""

import logging
from typing import Iterable, List, Optional, Sequence

import adblock
import httpx
from playwright.async_api import Page, Route

logger = logging.getLogger(__name__)

DEFAULT_FILTER_LISTS = [
    "https://easylist.to/easylist/easylist.txt",
    "https://easylist.to/easylist/easyprivacy.txt",
    "https://secure.fanboy.co.nz/fanboy-cookiemonster.txt",
    "https://secure.fanboy.co.nz/fanboy-annoyance.txt",
    "https://pgl.yoyo.org/adservers/serverlist.php?hostformat=adblockplus&showintro=0&mimetype=plaintext",
]

LIST_FETCH_TIMEOUT = 30.0

# Playwright resource types mapped to the request types understood by the engine
RESOURCE_TYPE_MAP = {
    'document': 'document',
    'stylesheet': 'stylesheet',
    'image': 'image',
    'media': 'media',
    'font': 'font',
    'script': 'script',
    'texttrack': 'other',
    'xhr': 'xmlhttprequest',
    'fetch': 'xmlhttprequest',
    'eventsource': 'other',
    'websocket': 'websocket',
    'manifest': 'other',
    'ping': 'ping',
    'other': 'other',
}

COLLECT_CLASSES_AND_IDS_SCRIPT = """() => {
    const classes = new Set();
    const ids = new Set();
    for (const el of document.querySelectorAll('[class], [id]')) {
        if (el.id) ids.add(el.id);
        for (const name of el.classList) classes.add(name);
    }
    return {classes: Array.from(classes), ids: Array.from(ids)};
}"""


def hiding_stylesheet(selectors: Iterable[str]) -> str:
    # One rule per selector: an invalid selector only drops its own rule
    return "\n".join(f"{selector} {{ display: none !important; }}" for selector in selectors)


class FilterEngine:
    """Immutable request and cosmetic filter compiled from filter list text."""

    def __init__(self, engine: adblock.Engine, list_names: Sequence[str] = ()):
        self._engine = engine
        self._list_names = tuple(list_names)

    @property
    def list_names(self) -> Sequence[str]:
        return self._list_names

    @classmethod
    def from_rules(cls, rules: Iterable[str], name: str = "inline") -> 'FilterEngine':
        """Compile an engine from individual filter rules."""
        return cls.from_texts({name: "\n".join(rules)})

    @classmethod
    def from_texts(cls, lists: dict) -> 'FilterEngine':
        """Compile an engine from a mapping of list name to list text."""
        filter_set = adblock.FilterSet()
        for text in lists.values():
            filter_set.add_filter_list(text)
        return cls(adblock.Engine(filter_set=filter_set), list(lists.keys()))

    @classmethod
    async def from_lists(
        cls,
        urls: Sequence[str] = DEFAULT_FILTER_LISTS,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = LIST_FETCH_TIMEOUT,
    ) -> 'FilterEngine':
        """Download filter lists and compile them into one engine.

        Lists that fail to download are skipped with a warning.

        Args:
            urls: Filter list URLs
            client: HTTP client to use (a temporary one is created if None)
            timeout: Per-list download timeout in seconds
        """
        owns_client = client is None
        http = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        texts = {}
        try:
            for url in urls:
                try:
                    response = await http.get(url, timeout=timeout)
                    response.raise_for_status()
                    texts[url] = response.text
                    logger.debug(f"Loaded filter list {url} ({len(response.text)} bytes)")
                except httpx.HTTPError as e:
                    logger.warning(f"Failed to load filter list {url}: {e}")
        finally:
            if owns_client:
                await http.aclose()

        engine = cls.from_texts(texts)
        logger.info(f"Filter engine initialized with {len(texts)}/{len(urls)} lists")
        return engine

    def should_block(self, url: str, source_url: str, resource_type: str) -> bool:
        """Check whether a request should be blocked.

        Args:
            url: Requested URL
            source_url: URL of the page issuing the request
            resource_type: Playwright resource type
        """
        request_type = RESOURCE_TYPE_MAP.get(resource_type, 'other')
        try:
            result = self._engine.check_network_urls(url, source_url or url, request_type)
        except Exception as e:
            logger.debug(f"Filter check failed for {url}: {e}")
            return False
        return bool(result.matched) and not getattr(result, 'exception', None)

    async def enable_blocking(self, page: Page) -> None:
        """Route every request of the page through the filter."""

        async def handle_route(route: Route) -> None:
            request = route.request
            # Never block the top-level document itself
            if request.is_navigation_request() and request.frame.parent_frame is None:
                await route.continue_()
                return

            if self.should_block(request.url, page.url, request.resource_type):
                logger.debug(f"Blocked {request.resource_type} request: {request.url[:200]}")
                await route.abort()
            else:
                await route.continue_()

        await page.route("**/*", handle_route)

    def cosmetic_selectors(self, url: str, classes: Sequence[str] = (), ids: Sequence[str] = ()) -> List[str]:
        """CSS selectors the cosmetic rules hide on a page.

        Site-specific rules (``example.com##.banner``) apply from the URL alone.
        Generic rules (``##.banner``) only match the classes and ids actually
        present on the page, unless the page is exempt via ``$generichide``.
        """
        resources = self._engine.url_cosmetic_resources(url)
        selectors = set(resources.hide_selectors)
        if not resources.generichide and (classes or ids):
            selectors.update(self._engine.hidden_class_id_selectors(
                list(classes), list(ids), resources.exceptions
            ))
        return sorted(selectors)

    async def hide_cosmetic_elements(self, page: Page) -> int:
        """Inject a stylesheet hiding cookie banners, overlays and other annoyances.

        Returns:
            Number of selectors hidden; 0 when nothing matched or injection failed
        """
        try:
            found = await page.evaluate(COLLECT_CLASSES_AND_IDS_SCRIPT) or {}
            selectors = self.cosmetic_selectors(page.url, found.get('classes', []), found.get('ids', []))
            if not selectors:
                return 0
            await page.add_style_tag(content=hiding_stylesheet(selectors))
        except Exception as e:
            logger.warning(f"Cosmetic filtering failed for {page.url}: {e}")
            return 0

        logger.info(f"Hid {len(selectors)} cosmetic selectors on {page.url}")
        return len(selectors)

    def __repr__(self) -> str:
        return f"FilterEngine(lists={len(self._list_names)})"


async def build_filter_engine(
    urls: Optional[List[str]] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[FilterEngine]:
    """Build the shared filter engine, returning None if that is impossible."""
    try:
        return await FilterEngine.from_lists(urls or DEFAULT_FILTER_LISTS, client=client)
    except Exception as e:
        logger.warning(f"Filter engine unavailable, continuing without request blocking: {e}")
        return None
