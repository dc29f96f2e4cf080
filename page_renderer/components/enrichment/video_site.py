"""
Site enrichment for video watch pages.

`VideoSiteEnricher` runs after the settle protocol on pages whose host is a
recognised video site. It waits (bounded) for the watch-page data to appear,
extracts `ExtractedMetadata` from the rendered DOM and the page's player-data
object, and injects a summary panel into the page so the serialized HTML
carries the same metadata in readable form.
"""
from typing import Any, Dict, Optional, TYPE_CHECKING

from playwright.async_api import Page

from page_renderer.components.enrichment.consent import ConsentResult, dismiss_consent
from page_renderer.components.extractor.metadata_parser import DESCRIPTION_LIMIT, VideoMetadataParser
from page_renderer.components.extractor.summary_panel import SUMMARY_PANEL_ID, build_summary_panel
from page_renderer.components.renderer.settle import SettleOutcome, run_stage
from page_renderer.core.exceptions import EnrichmentError, ExtractorError
from page_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from page_renderer.core.config import ConfigurationManager

logger = get_logger(__name__)

READINESS_SCRIPT = """
() => {
    const heading = document.querySelector('h1.ytd-watch-metadata, #title h1, h1.title');
    if (heading && heading.textContent.trim()) return true;
    const description = document.querySelector('#description-inline-expander, #description');
    if (description && description.textContent.trim()) return true;
    return Boolean(window.ytInitialPlayerResponse);
}
"""

PLAYER_DATA_SCRIPT = "() => window.ytInitialPlayerResponse || null"

INJECT_PANEL_SCRIPT = """
([panelId, panelHtml]) => {
    const existing = document.getElementById(panelId);
    if (existing) existing.remove();
    const holder = document.createElement('div');
    holder.innerHTML = panelHtml;
    const panel = holder.firstElementChild;
    (document.body || document.documentElement).prepend(panel);
    return true;
}
"""


class VideoSiteEnricher:
    """
    Consent dismissal and metadata enrichment for video-site pages.

    Attributes:
        readiness_timeout_ms (int): Upper bound on waiting for watch-page data.
        consent_settle_ms (int): Pause after a consent click.
        description_limit (int): Maximum length of the extracted description, in characters.
        inject_summary (bool): Whether to inject the summary panel into the page.
    """
    DEFAULT_READINESS_TIMEOUT_MS = 15000
    DEFAULT_CONSENT_SETTLE_MS = 1000

    def __init__(self, config: Optional['ConfigurationManager'] = None):
        def setting(key: str, default: Any) -> Any:
            return config.get(f'enrichment.video_site.{key}', default) if config else default

        self.readiness_timeout_ms = int(setting('readiness_timeout_ms', self.DEFAULT_READINESS_TIMEOUT_MS))
        self.consent_settle_ms = int(setting('consent_settle_ms', self.DEFAULT_CONSENT_SETTLE_MS))
        self.description_limit = int(setting('description_limit', DESCRIPTION_LIMIT))
        self.inject_summary = bool(setting('inject_summary', True))

    async def dismiss_consent(self, page: Page) -> ConsentResult:
        return await dismiss_consent(page, settle_ms=self.consent_settle_ms)

    async def wait_for_readiness(self, page: Page) -> SettleOutcome:
        outcome = await run_stage(
            "metadata_readiness",
            lambda: page.wait_for_function(READINESS_SCRIPT, timeout=self.readiness_timeout_ms),
        )
        if not outcome.ok:
            logger.warning(
                f"Watch-page data not ready within {self.readiness_timeout_ms}ms "
                f"({outcome.status.value}); extracting from current DOM."
            )
        return outcome

    async def read_player_data(self, page: Page) -> Optional[Dict[str, Any]]:
        try:
            data = await page.evaluate(PLAYER_DATA_SCRIPT)
        except Exception as e:
            logger.debug(f"Player data unavailable: {e}")
            return None
        return data if isinstance(data, dict) else None

    async def inject_summary_panel(self, page: Page, metadata: Dict[str, str]) -> bool:
        """Inserts (or replaces) the summary panel at the top of <body>. Failures are logged."""
        try:
            await page.evaluate(INJECT_PANEL_SCRIPT, [SUMMARY_PANEL_ID, build_summary_panel(metadata)])
        except Exception as e:
            logger.warning(f"Failed to inject metadata summary panel: {e}")
            return False
        return True

    async def enrich(self, page: Page) -> Dict[str, str]:
        """
        Extracts metadata from the page and, if enabled, injects the summary panel.

        Returns:
            Dict[str, str]: All `ExtractedMetadata` fields, "" where unavailable.

        Raises:
            EnrichmentError: If the page DOM cannot be read or parsed.
        """
        await self.wait_for_readiness(page)
        player_data = await self.read_player_data(page)
        try:
            html_content = await page.content()
            metadata = VideoMetadataParser(
                html_content, player_data=player_data, description_limit=self.description_limit
            ).get_metadata()
        except ExtractorError as e:
            raise EnrichmentError(f"Metadata extraction failed: {e.message}")
        except Exception as e:
            raise EnrichmentError(f"Could not read page for metadata extraction: {e}")

        logger.info(f"Extracted video metadata: title='{metadata['title'][:80]}'")
        if self.inject_summary:
            await self.inject_summary_panel(page, metadata)
        return metadata
