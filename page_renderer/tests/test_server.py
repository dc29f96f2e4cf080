import asyncio
import signal

import pytest
import uvicorn
from unittest.mock import AsyncMock

from page_renderer.api import main as main_module
from page_renderer.api.main import RenderServer, _install_fault_handler, create_app, run
from page_renderer.components.cache.response_cache import ResponseCache
from page_renderer.components.enrichment.video_site import VideoSiteEnricher
from page_renderer.core.manager import RenderManager


@pytest.fixture
def render_manager(fake_browser, browser_manager_with):
    """Builds a RenderManager over a connected fake browser."""
    def factory():
        browser = fake_browser()
        manager = RenderManager(
            config=None,
            browser_manager=browser_manager_with(browser),
            cache=ResponseCache(capacity=10, ttl_ms=60000),
            enricher=VideoSiteEnricher(config=None),
        )
        return manager, browser
    return factory


@pytest.mark.asyncio
async def test_termination_signal_starts_draining(render_manager, mock_config):
    manager, browser = render_manager()
    await manager.render("https://example.com/cached")
    application = create_app(config=mock_config({"renderer": {"warm_up": False}}), render_manager=manager)
    server = RenderServer(uvicorn.Config(application, log_config=None), manager)

    server.handle_exit(signal.SIGTERM, None)

    assert server.should_exit is True
    assert manager.browser_manager.is_draining

    rejected = await manager.render("https://example.com/uncached")
    assert rejected["success"] is False
    assert "shutting down" in rejected["error"]
    assert len(browser.contexts) == 1

    # Work that needs no browser is still answered.
    assert (await manager.render("https://example.com/cached"))["cached"] is True


@pytest.fixture
def run_config(mock_config):
    return mock_config({"server": {"host": "127.0.0.1", "port": 4050}, "renderer": {"warm_up": False}})


def test_run_returns_0_after_graceful_stop(monkeypatch, run_config):
    started = []

    def fake_run(self, sockets=None):
        started.append((self.config.host, self.config.port))

    monkeypatch.setattr(RenderServer, "run", fake_run)

    assert run(run_config) == 0
    assert started == [("127.0.0.1", 4050)]


def test_run_returns_1_when_server_crashes(monkeypatch, run_config):
    def fake_run(self, sockets=None):
        raise RuntimeError("address already in use")

    monkeypatch.setattr(RenderServer, "run", fake_run)

    assert run(run_config) == 1


def test_run_returns_1_when_browser_shutdown_is_unclean(monkeypatch, run_config):
    def fake_run(self, sockets=None):
        self.config.app.state.shutdown_clean = False

    monkeypatch.setattr(RenderServer, "run", fake_run)

    assert run(run_config) == 1


@pytest.fixture
def captured_exit(monkeypatch):
    """Replaces the hard process exit and the logging flush it is preceded by."""
    codes = []
    monkeypatch.setattr(main_module.os, "_exit", codes.append)
    monkeypatch.setattr(main_module.logging, "shutdown", lambda: None)
    return codes


async def _wait_for(condition, attempts=100):
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_loop_fault_tears_browser_down_and_exits_1(render_manager, captured_exit):
    manager, browser = render_manager()
    loop = asyncio.get_running_loop()
    previous_handler = loop.get_exception_handler()
    try:
        _install_fault_handler(loop, manager)
        loop.call_exception_handler({"message": "Task exception was never retrieved", "exception": RuntimeError("boom")})

        assert manager.browser_manager.is_draining
        await _wait_for(lambda: captured_exit)
    finally:
        loop.set_exception_handler(previous_handler)

    assert captured_exit == [1]
    assert browser.connected is False
    assert manager.browser_manager.browser is None


@pytest.mark.asyncio
async def test_loop_fault_exits_1_even_if_teardown_fails(render_manager, captured_exit):
    manager, _ = render_manager()
    manager.browser_manager.shutdown = AsyncMock(side_effect=RuntimeError("browser hung"))
    loop = asyncio.get_running_loop()
    previous_handler = loop.get_exception_handler()
    try:
        _install_fault_handler(loop, manager)
        loop.call_exception_handler({"message": "Exception in callback", "exception": ValueError("bad")})
        await _wait_for(lambda: captured_exit)
    finally:
        loop.set_exception_handler(previous_handler)

    assert captured_exit == [1]
    manager.browser_manager.shutdown.assert_awaited_once()
