"""
Page settle stages.

Each stage of the settle protocol (navigation, optional selector, network idle,
fixed delay) is run through `run_stage`, which turns the outcome into a
`SettleOutcome` instead of letting timeouts escape as exceptions. The caller
decides per stage what a soft timeout or a hard error means.
"""
import asyncio
import enum
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from page_renderer.core.logger import get_logger

logger = get_logger(__name__)


class SettleStatus(enum.Enum):
    OK = "ok"
    SOFT_TIMEOUT = "soft_timeout"
    HARD_ERROR = "hard_error"


@dataclass
class SettleOutcome:
    """Result of one settle stage."""
    stage: str
    status: SettleStatus
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status is SettleStatus.OK

    @property
    def timed_out(self) -> bool:
        return self.status is SettleStatus.SOFT_TIMEOUT

    @property
    def failed(self) -> bool:
        return self.status is SettleStatus.HARD_ERROR


async def run_stage(stage: str, action: Callable[[], Awaitable[Any]]) -> SettleOutcome:
    """
    Awaits `action()` and classifies how it ended.

    Playwright and asyncio timeouts become SOFT_TIMEOUT; any other exception
    becomes HARD_ERROR carrying the exception. Cancellation is not caught.
    """
    try:
        await action()
    except (PlaywrightTimeoutError, asyncio.TimeoutError) as e:
        return SettleOutcome(stage, SettleStatus.SOFT_TIMEOUT, e)
    except Exception as e:
        return SettleOutcome(stage, SettleStatus.HARD_ERROR, e)
    return SettleOutcome(stage, SettleStatus.OK)


async def navigate(page: Page, url: str, timeout_ms: int) -> SettleOutcome:
    """Navigates and waits only for DOMContentLoaded."""
    logger.info(f"Navigating to: {url}")
    outcome = await run_stage(
        "navigation",
        lambda: page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms),
    )
    if outcome.timed_out:
        logger.warning(f"Navigation timed out waiting for DOMContentLoaded on {url}: {outcome.error}")
    return outcome


async def wait_for_fast_selector(page: Page, selector: str, timeout_ms: int) -> SettleOutcome:
    outcome = await run_stage(
        "fast_selector",
        lambda: page.wait_for_selector(selector, timeout=timeout_ms),
    )
    if not outcome.ok:
        logger.debug(f"Fast selector '{selector}' not found within {timeout_ms}ms ({outcome.status.value}).")
    return outcome


async def wait_for_network_idle(page: Page, timeout_ms: int) -> SettleOutcome:
    outcome = await run_stage(
        "network_idle",
        lambda: page.wait_for_load_state("networkidle", timeout=timeout_ms),
    )
    if outcome.timed_out:
        logger.warning("Network idle state not reached within timeout, continuing extraction.")
    elif outcome.failed:
        logger.warning(f"Network idle wait failed, continuing extraction: {outcome.error}")
    return outcome


async def wait_fixed(page: Page, wait_ms: int) -> SettleOutcome:
    logger.info(f"Waiting {wait_ms}ms for dynamic content...")
    return await run_stage("fixed_delay", lambda: page.wait_for_timeout(wait_ms))
