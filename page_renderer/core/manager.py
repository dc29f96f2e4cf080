"""
Render orchestration.

`RenderManager` handles one render request end to end: it validates the
request, answers from the response cache when it can, otherwise drives a
fresh isolated browser context through the settle protocol, runs site
enrichment for special-cased hosts, serializes the DOM and writes the result
back to the cache. It never raises to its caller; failures come back as
`{"success": False, "error": ...}`.
"""
import math
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

from page_renderer.components.cache.response_cache import ResponseCache
from page_renderer.components.enrichment.video_site import VideoSiteEnricher
from page_renderer.components.renderer.blocking import install_media_blocking
from page_renderer.components.renderer.identity import STEALTH_INIT_SCRIPT, build_identity, classify_host
from page_renderer.components.renderer.playwright_manager import PlaywrightManager
from page_renderer.components.renderer.settle import (
    navigate,
    wait_fixed,
    wait_for_fast_selector,
    wait_for_network_idle,
)
from page_renderer.core.exceptions import ConfigurationError, EnrichmentError, PageRendererError
from page_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from page_renderer.core.config import ConfigurationManager

logger = get_logger(__name__)

EMBEDDED_MODE = "embedded"
CONTAINER_MODE = "container"

# mode -> (minimum, maximum, default) settle wait in milliseconds
MODE_WAIT_WINDOWS: Dict[str, Tuple[int, int, int]] = {
    EMBEDDED_MODE: (200, 1200, 800),
    CONTAINER_MODE: (350, 2000, 1500),
}

MISSING_URL_ERROR = "Missing url"


def resolve_mode(mode: Optional[str], default_mode: str = CONTAINER_MODE) -> str:
    """Returns `mode` if it names a known mode, else `default_mode`."""
    if isinstance(mode, str) and mode.strip().lower() in MODE_WAIT_WINDOWS:
        return mode.strip().lower()
    return default_mode


def clamp_wait_time(mode: str, wait_time: Any = None) -> int:
    """
    Clamps the requested settle wait into the mode's window.

    Missing, non-numeric or non-finite values use the mode default.
    """
    minimum, maximum, default = MODE_WAIT_WINDOWS[mode]
    if isinstance(wait_time, bool) or not isinstance(wait_time, (int, float)):
        return default
    if not math.isfinite(wait_time):
        return default
    return int(min(max(wait_time, minimum), maximum))


def compute_navigation_timeout(effective_wait_ms: int, floor_ms: int) -> int:
    return max(effective_wait_ms + 10000, floor_ms)


def _error_message(error: BaseException) -> str:
    if isinstance(error, PageRendererError):
        return error.message
    return str(error) or error.__class__.__name__


class RenderManager:
    """
    Orchestrates render requests against the shared browser and the response cache.

    Attributes:
        browser_manager (PlaywrightManager): Owner of the shared browser.
        cache (ResponseCache): Rendered-page cache keyed by mode and URL.
        enricher (VideoSiteEnricher): Enrichment hook for special-cased hosts.
    """
    DEFAULT_NAVIGATION_FLOOR_MS = 30000
    DEFAULT_NETWORK_IDLE_CEILING_MS = 15000
    DEFAULT_FAST_SELECTOR_TIMEOUT_MS = 1500

    def __init__(self, config: Optional['ConfigurationManager'] = None,
                 browser_manager: Optional[PlaywrightManager] = None,
                 cache: Optional[ResponseCache] = None,
                 enricher: Optional[VideoSiteEnricher] = None):
        self.config = config
        self.browser_manager = browser_manager or PlaywrightManager(config=config)
        self.cache = cache or ResponseCache.from_config(config)
        self.enricher = enricher or VideoSiteEnricher(config=config)

        def setting(key: str, default: int) -> int:
            value = config.get(key, default) if config else default
            try:
                return int(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Setting '{key}' must be an integer, got {value!r}.")

        self.navigation_floor_ms = setting('renderer.navigation_timeout_floor_ms', self.DEFAULT_NAVIGATION_FLOOR_MS)
        self.network_idle_ceiling_ms = setting('renderer.network_idle_ceiling_ms', self.DEFAULT_NETWORK_IDLE_CEILING_MS)
        self.fast_selector_timeout_ms = setting('renderer.fast_selector_timeout_ms', self.DEFAULT_FAST_SELECTOR_TIMEOUT_MS)
        logger.info(
            f"RenderManager initialized (cache capacity={self.cache.capacity}, ttl={self.cache.ttl_ms}ms, "
            f"navigation floor={self.navigation_floor_ms}ms)."
        )

    async def render(self, url: Any, wait_time: Any = None, mode: Optional[str] = None,
                     use_cache: bool = True, block_media: bool = False,
                     fast_selector: Optional[str] = None,
                     default_mode: str = CONTAINER_MODE) -> Dict[str, Any]:
        """
        Renders `url` and returns the response body.

        Args:
            url: Target URL. Blank or missing yields a "Missing url" failure with no browser work.
            wait_time: Requested settle wait in ms; clamped to the mode window.
            mode (Optional[str]): 'embedded' or 'container'; unknown values use `default_mode`.
            use_cache (bool): Consult the cache before rendering.
            block_media (bool): Abort image/media/font/stylesheet/map requests.
            fast_selector (Optional[str]): Selector to wait briefly for after navigation.
            default_mode (str): Mode implied by the endpoint that received the request.

        Returns:
            Dict[str, Any]: `{success: True, html, metadata, cached}` or `{success: False, error}`.
        """
        target = url.strip() if isinstance(url, str) else ""
        if not target:
            logger.warning("Render request rejected: missing url.")
            return {"success": False, "error": MISSING_URL_ERROR}

        resolved_mode = resolve_mode(mode, default_mode)
        effective_wait = clamp_wait_time(resolved_mode, wait_time)

        if use_cache:
            cached = self.cache.read(resolved_mode, target)
            if cached is not None:
                logger.info(f"Cache hit for {resolved_mode} {target}.")
                return {"success": True, "html": cached["html"], "metadata": cached.get("metadata"), "cached": True}

        try:
            payload = await self._render_page(target, resolved_mode, effective_wait, block_media, fast_selector)
        except Exception as e:
            logger.error(f"Render failed for {target}: {e}", exc_info=True)
            return {"success": False, "error": _error_message(e)}

        self.cache.write(resolved_mode, target, payload)
        return {"success": True, "html": payload["html"], "metadata": payload["metadata"], "cached": False}

    async def _render_page(self, url: str, mode: str, effective_wait: int,
                           block_media: bool, fast_selector: Optional[str]) -> Dict[str, Any]:
        hostname, is_video_site = classify_host(url)
        identity = build_identity(self.config, url)
        navigation_timeout = compute_navigation_timeout(effective_wait, self.navigation_floor_ms)
        logger.debug(
            f"Rendering {url} (host={hostname or '?'}, mode={mode}, wait={effective_wait}ms, "
            f"navigation timeout={navigation_timeout}ms, enrichment={is_video_site})"
        )

        async with self.browser_manager.isolated_context(**identity.context_options()) as context:
            await context.add_init_script(STEALTH_INIT_SCRIPT)
            await context.set_extra_http_headers(identity.extra_http_headers)
            page = await context.new_page()
            page.set_default_navigation_timeout(navigation_timeout)

            if block_media:
                await install_media_blocking(page)

            navigation = await navigate(page, url, navigation_timeout)
            if navigation.failed:
                raise navigation.error

            if is_video_site:
                await self.enricher.dismiss_consent(page)

            if fast_selector:
                await wait_for_fast_selector(page, fast_selector, self.fast_selector_timeout_ms)

            await wait_for_network_idle(page, min(navigation_timeout, self.network_idle_ceiling_ms))

            settle = await wait_fixed(page, effective_wait)
            if settle.failed:
                raise settle.error

            metadata: Optional[Dict[str, str]] = None
            if is_video_site:
                await self.enricher.dismiss_consent(page)
                try:
                    metadata = await self.enricher.enrich(page)
                except EnrichmentError as e:
                    logger.warning(f"Enrichment skipped for {url}: {e.message}")

            html = await page.content()

        logger.info(f"Rendered {url} ({len(html)} characters).")
        return {"html": html, "metadata": metadata}
