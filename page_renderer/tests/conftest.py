import os
import re

# Must be set before page_renderer.core.config creates the global config_manager.
os.environ.setdefault("APP_ENV", "test")

import pytest

from page_renderer.components.enrichment.video_site import INJECT_PANEL_SCRIPT, PLAYER_DATA_SCRIPT
from page_renderer.components.renderer.playwright_manager import PlaywrightManager


class MockConfigurationManager:
    def __init__(self, settings=None):
        self.settings = settings if settings is not None else {}

    def get(self, key, default=None):
        try:
            value = self.settings
            for k_part in key.split('.'):
                value = value[k_part]
            return value
        except KeyError:
            return default
        except TypeError:
            return default


class FakeElement:
    def __init__(self, visible=True, click_error=None, on_click=None):
        self.visible = visible
        self.click_error = click_error
        self.on_click = on_click
        self.clicks = 0

    async def is_visible(self):
        return self.visible

    async def click(self, timeout=None):
        if self.click_error:
            raise self.click_error
        self.clicks += 1
        if self.on_click:
            self.on_click()


class FakeFrame:
    def __init__(self, url="", elements=None):
        self.url = url
        self.elements = dict(elements or {})
        self.queries = []

    async def query_selector(self, selector):
        self.queries.append(selector)
        return self.elements.get(selector)


class FakePage:
    """Records every browser call the render path makes and answers from canned values."""
    def __init__(self, html="<html><head><title>Fake</title></head><body><p>hello</p></body></html>",
                 goto_error=None, idle_error=None, selector_error=None, readiness_error=None,
                 fixed_wait_error=None, content_error=None, player_data=None,
                 main_frame=None, frames=None):
        self.html = html
        self.goto_error = goto_error
        self.idle_error = idle_error
        self.selector_error = selector_error
        self.readiness_error = readiness_error
        self.fixed_wait_error = fixed_wait_error
        self.content_error = content_error
        self.player_data = player_data
        self.main_frame = main_frame or FakeFrame("about:blank")
        self.frames = [self.main_frame] + list(frames or [])
        self.calls = []
        self.routes = []
        self.default_navigation_timeout = None

    def set_default_navigation_timeout(self, timeout):
        self.default_navigation_timeout = timeout

    async def route(self, pattern, handler):
        self.routes.append((pattern, handler))

    async def goto(self, url, wait_until=None, timeout=None):
        self.calls.append(("goto", url, wait_until, timeout))
        if self.goto_error:
            raise self.goto_error

    async def wait_for_selector(self, selector, timeout=None):
        self.calls.append(("wait_for_selector", selector, timeout))
        if self.selector_error:
            raise self.selector_error

    async def wait_for_load_state(self, state, timeout=None):
        self.calls.append(("wait_for_load_state", state, timeout))
        if self.idle_error:
            raise self.idle_error

    async def wait_for_timeout(self, timeout):
        self.calls.append(("wait_for_timeout", timeout))
        if self.fixed_wait_error:
            raise self.fixed_wait_error

    async def wait_for_function(self, script, timeout=None):
        self.calls.append(("wait_for_function", timeout))
        if self.readiness_error:
            raise self.readiness_error

    async def evaluate(self, script, arg=None):
        if script == PLAYER_DATA_SCRIPT:
            self.calls.append(("evaluate", "player_data"))
            return self.player_data
        if script == INJECT_PANEL_SCRIPT:
            self.calls.append(("evaluate", "inject_panel"))
            panel_id, panel_html = arg
            self.html = re.sub(rf'<section id="{panel_id}".*?</section>', "", self.html, flags=re.DOTALL)
            self.html = self.html.replace("<body>", "<body>" + panel_html, 1)
            return True
        self.calls.append(("evaluate", script))
        return None

    async def content(self):
        self.calls.append(("content",))
        if self.content_error:
            raise self.content_error
        return self.html

    def call_names(self):
        return [call[0] for call in self.calls]


class FakeContext:
    def __init__(self, page, options, close_error=None):
        self.page = page
        self.options = options
        self.close_error = close_error
        self.init_scripts = []
        self.headers = None
        self.closed = False

    async def add_init_script(self, script):
        self.init_scripts.append(script)

    async def set_extra_http_headers(self, headers):
        self.headers = dict(headers)

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True
        if self.close_error:
            raise self.close_error


class FakeBrowser:
    def __init__(self, page_factory=None, close_error=None, context_close_error=None):
        self.page_factory = page_factory or FakePage
        self.close_error = close_error
        self.context_close_error = context_close_error
        self.connected = True
        self.contexts = []

    def is_connected(self):
        return self.connected

    async def new_context(self, **options):
        context = FakeContext(self.page_factory(), options, close_error=self.context_close_error)
        self.contexts.append(context)
        return context

    async def close(self):
        self.connected = False
        if self.close_error:
            raise self.close_error


@pytest.fixture
def mock_config():
    return MockConfigurationManager


@pytest.fixture
def fake_page():
    return FakePage


@pytest.fixture
def fake_frame():
    return FakeFrame


@pytest.fixture
def fake_element():
    return FakeElement


@pytest.fixture
def fake_browser():
    return FakeBrowser


@pytest.fixture
def browser_manager_with():
    """Returns a factory: PlaywrightManager whose shared browser is already the given fake."""
    def factory(browser):
        manager = PlaywrightManager(config=None)
        manager.browser = browser
        return manager
    return factory
