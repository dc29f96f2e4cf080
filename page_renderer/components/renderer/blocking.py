"""
Request interception that drops heavy page resources.

Installed before navigation when a render asks for `blockMedia`: images,
video/audio, fonts, stylesheets and embedded map tiles are aborted, every
other request continues unchanged.
"""
import re

from playwright.async_api import Page, Route, Request

from page_renderer.core.logger import get_logger

logger = get_logger(__name__)

BLOCKED_RESOURCE_TYPES = frozenset({"image", "media", "font", "stylesheet"})

BLOCKED_URL_PATTERN = re.compile(
    r"(maps\.googleapis\.com|maps\.gstatic\.com|/maps/(api|vt)|tile\.openstreetmap\.org)",
    re.IGNORECASE,
)


def should_block(resource_type: str, url: str) -> bool:
    return resource_type in BLOCKED_RESOURCE_TYPES or bool(BLOCKED_URL_PATTERN.search(url))


async def _route_handler(route: Route, request: Request) -> None:
    if should_block(request.resource_type, request.url):
        await route.abort()
        return
    await route.continue_()


async def install_media_blocking(page: Page) -> None:
    await page.route("**/*", _route_handler)
    logger.debug("Media request blocking installed.")
