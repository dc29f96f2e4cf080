"""
Renderer component for the Page Renderer service.

This sub-package owns the shared headless browser, the per-request browser
identity and the page settle stages used to obtain fully-hydrated HTML.
"""
from .playwright_manager import PlaywrightManager
from .identity import BrowserIdentity, build_identity, classify_host
from .settle import SettleOutcome, SettleStatus

__all__ = [
    "PlaywrightManager",
    "BrowserIdentity",
    "build_identity",
    "classify_host",
    "SettleOutcome",
    "SettleStatus",
]
