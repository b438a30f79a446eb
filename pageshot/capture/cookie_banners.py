"""Cookie and consent banner removal.

Cosmetic filter rules hide most consent banners, but some consent
platforms render markup the lists do not cover. This removes what is left
by matching well-known banner selectors directly in the DOM.
"""

import logging
from typing import Optional

from playwright.async_api import Page

from .filter_engine import FilterEngine

logger = logging.getLogger(__name__)

BANNER_SELECTORS = [
    '[id*="cookie"]',
    '[class*="cookie"]',
    '[id*="consent"]',
    '[class*="consent"]',
    '[id*="gdpr"]',
    '[class*="gdpr"]',
    '[id*="privacy"]',
    '[class*="privacy"]',
    'div[role="alertdialog"]',
    '#cookie-notice',
    '.onetrust-banner-sdk',
    '.ot-sdk-container',
    '#didomi-host',
    '.didomi-consent-popup',
    '.fc-consent-root',
    '.fc-dialog-container',
    '.cmp-banner_banner',
    '.cookielaw-banner',
    '.cookie-law-info-bar',
    '[data-testid*="cookie"]',
    '[data-testid*="consent"]',
    '[aria-label*="cookie"]',
    '[aria-label*="consent"]',
    '[aria-describedby*="cookie"]',
    '[class*="accept-all"]',
    '[class*="accept-cookies"]',
    '[id*="accept-all"]',
    '[id*="accept-cookies"]',
]

# Selectors this specific are removed without looking at the element text
TRUSTED_SELECTOR_MARKERS = ('cookie', 'consent', 'onetrust', 'didomi')

BANNER_KEYWORDS = ['cookie', 'consent', 'privacy', 'gdpr', 'accept', 'reject', 'manage preferences']

REMOVE_BANNERS_SCRIPT = """({selectors, markers, keywords}) => {
    let removed = 0;
    const mentions = (el, words) => {
        const text = (el.textContent || '').toLowerCase();
        return words.some(word => text.includes(word));
    };

    for (const selector of selectors) {
        let elements;
        try {
            elements = document.querySelectorAll(selector);
        } catch (e) {
            continue;
        }
        const trusted = markers.some(marker => selector.includes(marker));
        for (const el of elements) {
            if (!el.isConnected || el === document.body || el === document.documentElement) continue;
            if (trusted || mentions(el, keywords)) {
                el.remove();
                removed++;
            }
        }
    }

    // Semi-transparent backdrops left behind by consent dialogs
    for (const overlay of document.querySelectorAll('div[style*="position: fixed"], div[style*="position: absolute"]')) {
        const style = window.getComputedStyle(overlay);
        const zIndex = parseInt(style.zIndex, 10) || 0;
        const opacity = parseFloat(style.opacity);
        if (zIndex > 1000 && opacity > 0 && opacity < 1 && mentions(overlay, ['cookie', 'consent', 'privacy'])) {
            overlay.remove();
            removed++;
        }
    }
    return removed;
}"""


async def remove_cookie_banners(page: Page) -> int:
    """Remove consent banners still present in the DOM.

    Returns:
        Number of elements removed; 0 if the page could not be evaluated
    """
    try:
        removed = await page.evaluate(REMOVE_BANNERS_SCRIPT, {
            'selectors': BANNER_SELECTORS,
            'markers': list(TRUSTED_SELECTOR_MARKERS),
            'keywords': BANNER_KEYWORDS,
        })
    except Exception as e:
        logger.warning(f"Cookie banner removal failed: {e}")
        return 0

    if removed:
        logger.info(f"Removed {removed} cookie banner elements")
    return removed or 0


async def hide_annoyances(page: Page, filter_engine: Optional[FilterEngine] = None) -> None:
    """Hide cookie banners and overlays before a screenshot.

    Cosmetic filter rules run first when a filter engine is available; the
    DOM sweep catches whatever they missed.
    """
    if filter_engine is not None:
        await filter_engine.hide_cosmetic_elements(page)
    await remove_cookie_banners(page)
