import asyncio
import math

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from page_renderer.components.cache.response_cache import ResponseCache
from page_renderer.components.enrichment.video_site import VideoSiteEnricher
from page_renderer.components.extractor.metadata_parser import TRUNCATION_MARKER
from page_renderer.components.extractor.summary_panel import SUMMARY_PANEL_ID
from page_renderer.components.renderer.identity import STEALTH_INIT_SCRIPT
from page_renderer.core.exceptions import ConfigurationError, EnrichmentError
from page_renderer.core.manager import (
    CONTAINER_MODE,
    EMBEDDED_MODE,
    MISSING_URL_ERROR,
    RenderManager,
    clamp_wait_time,
    compute_navigation_timeout,
    resolve_mode,
)

VIDEO_HTML = (
    "<html><head><title>A Video - YouTube</title></head>"
    "<body><div id=\"title\"><h1>A Video</h1></div></body></html>"
)


@pytest.fixture
def make_manager(fake_browser, browser_manager_with):
    """Builds a RenderManager over a fake browser whose pages come from `page_factory`."""
    def factory(page_factory=None, enricher=None, config=None):
        browser = fake_browser(page_factory=page_factory)
        manager = RenderManager(
            config=config,
            browser_manager=browser_manager_with(browser),
            cache=ResponseCache(capacity=10, ttl_ms=60000),
            enricher=enricher or VideoSiteEnricher(config=None),
        )
        return manager, browser
    return factory


@pytest.mark.parametrize("mode, wait_time, expected", [
    (EMBEDDED_MODE, None, 800),
    (EMBEDDED_MODE, 50, 200),
    (EMBEDDED_MODE, 5000, 1200),
    (EMBEDDED_MODE, 1000, 1000),
    (EMBEDDED_MODE, "1000", 800),
    (EMBEDDED_MODE, True, 800),
    (EMBEDDED_MODE, math.nan, 800),
    (CONTAINER_MODE, None, 1500),
    (CONTAINER_MODE, 100, 350),
    (CONTAINER_MODE, 99999, 2000),
    (CONTAINER_MODE, 1700.9, 1700),
    (CONTAINER_MODE, math.inf, 1500),
])
def test_clamp_wait_time(mode, wait_time, expected):
    assert clamp_wait_time(mode, wait_time) == expected


def test_compute_navigation_timeout():
    assert compute_navigation_timeout(800, 30000) == 30000
    assert compute_navigation_timeout(2000, 30000) == 30000
    assert compute_navigation_timeout(25000, 30000) == 35000


def test_resolve_mode():
    assert resolve_mode("embedded") == EMBEDDED_MODE
    assert resolve_mode(" Container ", EMBEDDED_MODE) == CONTAINER_MODE
    assert resolve_mode("fullscreen", EMBEDDED_MODE) == EMBEDDED_MODE
    assert resolve_mode(None) == CONTAINER_MODE


@pytest.mark.asyncio
@pytest.mark.parametrize("url", [None, "", "   ", 42])
async def test_missing_url_does_no_browser_work(make_manager, url):
    manager, browser = make_manager()
    result = await manager.render(url)

    assert result == {"success": False, "error": MISSING_URL_ERROR}
    assert browser.contexts == []


@pytest.mark.asyncio
async def test_render_plain_page(make_manager, fake_page):
    manager, browser = make_manager()

    result = await manager.render("https://example.com/page", wait_time=1000, mode="embedded")

    assert result["success"] is True
    assert result["cached"] is False
    assert result["metadata"] is None
    assert "<p>hello</p>" in result["html"]

    context = browser.contexts[0]
    page = context.page
    assert context.closed is True
    assert context.init_scripts == [STEALTH_INIT_SCRIPT]
    assert context.headers["Referer"] == "https://example.com/"
    assert context.headers["sec-ch-ua-mobile"] == "?0"
    assert context.options["viewport"] == {"width": 1366, "height": 768}
    assert page.default_navigation_timeout == 30000
    assert page.calls == [
        ("goto", "https://example.com/page", "domcontentloaded", 30000),
        ("wait_for_load_state", "networkidle", 15000),
        ("wait_for_timeout", 1000),
        ("content",),
    ]


@pytest.mark.asyncio
async def test_identity_follows_configuration(make_manager, mock_config):
    config = mock_config({
        "identity": {"user_agent": "TestAgent/1.0", "locale": "en-GB", "timezone": "Europe/London"},
        "renderer": {"navigation_timeout_floor_ms": 45000},
    })
    manager, browser = make_manager(config=config)

    await manager.render("https://example.com/")

    context = browser.contexts[0]
    assert context.options["user_agent"] == "TestAgent/1.0"
    assert context.options["locale"] == "en-GB"
    assert context.options["timezone_id"] == "Europe/London"
    assert context.page.calls[0][3] == 45000


@pytest.mark.asyncio
async def test_second_request_is_served_from_cache(make_manager):
    manager, browser = make_manager()

    first = await manager.render("https://example.com/", mode="container")
    second = await manager.render("https://example.com/", mode="container", wait_time=350)

    assert first["cached"] is False
    assert second["cached"] is True
    assert second["html"] == first["html"]
    assert second["metadata"] == first["metadata"]
    assert len(browser.contexts) == 1


@pytest.mark.asyncio
async def test_use_cache_false_renders_again_and_refreshes_entry(make_manager):
    manager, browser = make_manager()

    await manager.render("https://example.com/")
    result = await manager.render("https://example.com/", use_cache=False)

    assert result["cached"] is False
    assert len(browser.contexts) == 2
    assert (await manager.render("https://example.com/"))["cached"] is True


@pytest.mark.asyncio
async def test_cache_is_keyed_by_mode(make_manager):
    manager, browser = make_manager()

    await manager.render("https://example.com/", mode="embedded")
    result = await manager.render("https://example.com/", mode="container")

    assert result["cached"] is False
    assert len(browser.contexts) == 2


@pytest.mark.asyncio
async def test_unknown_mode_uses_endpoint_default(make_manager):
    manager, browser = make_manager()

    await manager.render("https://example.com/", mode="bogus", default_mode=EMBEDDED_MODE)

    assert ("wait_for_timeout", 800) in browser.contexts[0].page.calls
    assert ResponseCache.make_key(EMBEDDED_MODE, "https://example.com/") in manager.cache


@pytest.mark.asyncio
async def test_video_site_render_returns_metadata(make_manager, fake_page):
    player_data = {"videoDetails": {"shortDescription": "x" * 4500, "author": "Uploader"}}
    manager, browser = make_manager(page_factory=lambda: fake_page(html=VIDEO_HTML, player_data=player_data))

    result = await manager.render("https://www.youtube.com/watch?v=abc", mode="embedded")

    assert result["success"] is True
    metadata = result["metadata"]
    assert metadata["title"] == "A Video"
    assert metadata["channel"] == "Uploader"
    assert len(metadata["description"]) <= 4001
    assert metadata["description"].endswith(TRUNCATION_MARKER)
    assert SUMMARY_PANEL_ID in result["html"]

    names = browser.contexts[0].page.call_names()
    assert names.index("goto") < names.index("wait_for_timeout") < names.index("wait_for_function")
    assert names[-1] == "content"


@pytest.mark.asyncio
async def test_enrichment_failure_keeps_render(make_manager):
    class FailingEnricher(VideoSiteEnricher):
        async def enrich(self, page):
            raise EnrichmentError("Metadata extraction failed: boom")

    manager, _ = make_manager(enricher=FailingEnricher(config=None))
    result = await manager.render("https://youtu.be/abc")

    assert result["success"] is True
    assert result["metadata"] is None


@pytest.mark.asyncio
async def test_navigation_timeout_proceeds(make_manager, fake_page):
    manager, browser = make_manager(
        page_factory=lambda: fake_page(goto_error=PlaywrightTimeoutError("Timeout 30000ms exceeded."))
    )

    result = await manager.render("https://slow.example.com/")

    assert result["success"] is True
    assert browser.contexts[0].page.call_names()[-1] == "content"


@pytest.mark.asyncio
async def test_navigation_hard_error_fails_and_closes_context(make_manager, fake_page):
    manager, browser = make_manager(
        page_factory=lambda: fake_page(goto_error=Exception("net::ERR_NAME_NOT_RESOLVED at https://nope.invalid/"))
    )

    result = await manager.render("https://nope.invalid/")

    assert result["success"] is False
    assert "ERR_NAME_NOT_RESOLVED" in result["error"]
    assert browser.contexts[0].closed is True
    assert len(manager.cache) == 0


@pytest.mark.asyncio
async def test_network_idle_problems_are_not_fatal(make_manager, fake_page):
    manager, _ = make_manager(page_factory=lambda: fake_page(idle_error=Exception("page crashed?")))
    assert (await manager.render("https://example.com/a"))["success"] is True

    manager, _ = make_manager(page_factory=lambda: fake_page(idle_error=PlaywrightTimeoutError("idle")))
    assert (await manager.render("https://example.com/b"))["success"] is True


@pytest.mark.asyncio
async def test_fixed_wait_and_serialization_errors_are_fatal(make_manager, fake_page):
    manager, _ = make_manager(page_factory=lambda: fake_page(fixed_wait_error=Exception("Target closed")))
    result = await manager.render("https://example.com/a")
    assert result == {"success": False, "error": "Target closed"}

    manager, _ = make_manager(page_factory=lambda: fake_page(content_error=Exception("Execution context was destroyed")))
    result = await manager.render("https://example.com/b")
    assert result == {"success": False, "error": "Execution context was destroyed"}


@pytest.mark.asyncio
async def test_block_media_and_fast_selector(make_manager):
    manager, browser = make_manager()

    await manager.render("https://example.com/", block_media=True, fast_selector="#app")

    page = browser.contexts[0].page
    assert len(page.routes) == 1
    assert ("wait_for_selector", "#app", 1500) in page.calls


@pytest.mark.asyncio
async def test_fast_selector_timeout_is_not_fatal(make_manager, fake_page):
    manager, _ = make_manager(page_factory=lambda: fake_page(selector_error=PlaywrightTimeoutError("selector")))
    result = await manager.render("https://example.com/", fast_selector="#never")
    assert result["success"] is True


@pytest.mark.asyncio
async def test_draining_rejects_render(make_manager):
    manager, browser = make_manager()
    manager.browser_manager.begin_draining()

    result = await manager.render("https://example.com/")

    assert result["success"] is False
    assert "shutting down" in result["error"]
    assert browser.contexts == []


@pytest.mark.asyncio
async def test_draining_still_serves_cache_hits(make_manager):
    manager, _ = make_manager()
    await manager.render("https://example.com/")
    manager.browser_manager.begin_draining()

    result = await manager.render("https://example.com/")

    assert result["success"] is True
    assert result["cached"] is True


@pytest.mark.asyncio
async def test_concurrent_renders_use_isolated_contexts(make_manager):
    manager, browser = make_manager()
    urls = [f"https://example.com/{i}" for i in range(4)]

    results = await asyncio.gather(*(manager.render(url) for url in urls))

    assert all(result["success"] for result in results)
    assert len(browser.contexts) == 4
    assert len({id(context) for context in browser.contexts}) == 4
    assert all(context.closed for context in browser.contexts)
    assert len(manager.cache) == 4


def test_non_integer_timing_setting_is_rejected(mock_config, fake_browser, browser_manager_with):
    config = mock_config({"renderer": {"navigation_timeout_floor_ms": "thirty seconds"}})
    with pytest.raises(ConfigurationError) as excinfo:
        RenderManager(
            config=config,
            browser_manager=browser_manager_with(fake_browser()),
            cache=ResponseCache(),
            enricher=VideoSiteEnricher(config=None),
        )
    assert "renderer.navigation_timeout_floor_ms" in str(excinfo.value)
