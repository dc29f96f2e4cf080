"""
Consent-dialog dismissal.

The candidates are an ordered list of (scope, selector) pairs. "main" pairs
are tried in the page's main frame; "frame" pairs are tried in every sub-frame
whose URL looks like a consent host. The search is lazy and stops at the first
visible element that accepts a click. Nothing here raises: a page without a
dialog, a detached frame or a failed click all end as "not dismissed".
"""
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from playwright.async_api import Frame, Page

from page_renderer.core.logger import get_logger

logger = get_logger(__name__)

MAIN_SCOPE = "main"
FRAME_SCOPE = "frame"

CONSENT_FRAME_PATTERN = re.compile(r"^https?://([a-z0-9-]+\.)*consent\.(youtube|google)\.[a-z.]+/", re.IGNORECASE)

CONSENT_CANDIDATES: List[Tuple[str, str]] = [
    (MAIN_SCOPE, "ytd-consent-bump-v2-lightbox button[aria-label*='Accept']"),
    (MAIN_SCOPE, "tp-yt-paper-dialog button[aria-label*='Accept all']"),
    (MAIN_SCOPE, "button[aria-label*='Accept all']"),
    (MAIN_SCOPE, "form[action*='consent'] button[aria-label*='Accept']"),
    (MAIN_SCOPE, "button:has-text('Accept all')"),
    (MAIN_SCOPE, "#L2AGLb"),
    (FRAME_SCOPE, "#introAgreeButton"),
    (FRAME_SCOPE, "button[aria-label*='Accept all']"),
    (FRAME_SCOPE, "button:has-text('Accept all')"),
    (FRAME_SCOPE, "button:has-text('I agree')"),
]

DEFAULT_CLICK_TIMEOUT_MS = 2000


@dataclass
class ConsentResult:
    dismissed: bool
    selector: Optional[str] = None
    frame_url: Optional[str] = None


def is_consent_frame(url: str) -> bool:
    return bool(url) and CONSENT_FRAME_PATTERN.match(url) is not None


def iter_candidates(page: Page,
                    candidates: List[Tuple[str, str]] = CONSENT_CANDIDATES) -> Iterator[Tuple[Frame, str]]:
    """
    Yields (frame, selector) pairs in probing order.

    Sub-frames are looked up only once the main-frame candidates are exhausted.
    """
    main_frame = page.main_frame
    for scope, selector in candidates:
        if scope == MAIN_SCOPE:
            yield main_frame, selector

    consent_frames = [frame for frame in page.frames
                      if frame is not main_frame and is_consent_frame(frame.url)]
    for frame in consent_frames:
        for scope, selector in candidates:
            if scope == FRAME_SCOPE:
                yield frame, selector


async def _try_click(frame: Frame, selector: str, click_timeout_ms: int) -> bool:
    try:
        element = await frame.query_selector(selector)
        if element is None or not await element.is_visible():
            return False
        await element.click(timeout=click_timeout_ms)
        return True
    except Exception as e:
        logger.debug(f"Consent candidate '{selector}' in {frame.url or 'main frame'} not clickable: {e}")
        return False


async def dismiss_consent(page: Page, settle_ms: int = 0,
                          click_timeout_ms: int = DEFAULT_CLICK_TIMEOUT_MS) -> ConsentResult:
    """
    Clicks the first visible consent control and waits `settle_ms` for the UI to settle.
    """
    try:
        for frame, selector in iter_candidates(page):
            if await _try_click(frame, selector, click_timeout_ms):
                logger.info(f"Dismissed consent dialog via '{selector}'.")
                if settle_ms > 0:
                    try:
                        await page.wait_for_timeout(settle_ms)
                    except Exception as e:
                        logger.debug(f"Settle wait after consent click failed: {e}")
                return ConsentResult(True, selector, frame.url)
    except Exception as e:
        logger.warning(f"Consent dismissal aborted: {e}")
        return ConsentResult(False)
    logger.debug("No consent dialog found.")
    return ConsentResult(False)
