"""
Host classification and outbound browser identity.

Two pure helpers used by the render orchestrator before any browser work:

- `classify_host(url)` normalizes the target hostname and reports whether the
  host is one of the special-cased video sites that get site enrichment.
- `build_identity(config, url)` assembles the user agent, locale, timezone,
  viewport and request headers a new browser context is created with.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING
from urllib.parse import urlparse

if TYPE_CHECKING:
    from page_renderer.core.config import ConfigurationManager

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_VIEWPORT_WIDTH = 1366
DEFAULT_VIEWPORT_HEIGHT = 768
DEFAULT_LOCALE = "en-US"
DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"
DEFAULT_SEC_CH_UA = '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"'
DEFAULT_SEC_CH_UA_PLATFORM = '"Windows"'

# Hostnames (after normalization) that receive consent dismissal and metadata enrichment.
VIDEO_SITE_HOSTS = frozenset({
    "youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtu.be",
    "youtube-nocookie.com",
})

# Runs before any page script. Hides navigator.webdriver and provides the
# chrome.runtime object that ordinary Chrome installs expose to pages.
STEALTH_INIT_SCRIPT = """
(() => {
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined,
        configurable: true
    });

    if (!window.chrome) {
        window.chrome = {};
    }
    if (!window.chrome.runtime) {
        window.chrome.runtime = {
            id: undefined,
            connect: () => {},
            sendMessage: () => {}
        };
    }

    delete window.__playwright;
    delete window.__pwInitScripts;
})();
"""


def classify_host(url: str) -> Tuple[str, bool]:
    """
    Maps a URL to (normalized hostname, is special-cased video site).

    The hostname is lower-cased with any leading "www." removed. URLs that do
    not parse to a hostname yield ("", False).
    """
    try:
        hostname = urlparse(url).hostname or ""
    except ValueError:
        return "", False
    hostname = hostname.lower().rstrip(".")
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname, hostname in VIDEO_SITE_HOSTS


def origin_referer(url: str) -> Optional[str]:
    """Returns "<scheme>://<host>/" for the target URL, or None if it has no origin."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}/"


@dataclass
class BrowserIdentity:
    """Outbound identity applied to one isolated browser context."""
    user_agent: str
    locale: str
    timezone_id: str
    viewport: Dict[str, int]
    extra_http_headers: Dict[str, str] = field(default_factory=dict)

    def context_options(self) -> Dict[str, Any]:
        """Keyword arguments for `Browser.new_context()`."""
        return {
            "user_agent": self.user_agent,
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "viewport": dict(self.viewport),
        }


def build_identity(config: Optional['ConfigurationManager'], url: str) -> BrowserIdentity:
    """
    Builds the browser identity for a request to `url` from configuration.

    Every setting has a default, so `config=None` yields a complete desktop
    Chrome identity. The Referer header is the target's own origin.
    """
    def setting(key: str, default: Any) -> Any:
        return config.get(key, default) if config else default

    user_agent = setting("identity.user_agent", DEFAULT_USER_AGENT)
    headers = {
        "Accept-Language": setting("identity.accept_language", DEFAULT_ACCEPT_LANGUAGE),
        "sec-ch-ua": setting("identity.sec_ch_ua", DEFAULT_SEC_CH_UA),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": setting("identity.sec_ch_ua_platform", DEFAULT_SEC_CH_UA_PLATFORM),
    }
    referer = origin_referer(url)
    if referer:
        headers["Referer"] = referer

    return BrowserIdentity(
        user_agent=user_agent,
        locale=setting("identity.locale", DEFAULT_LOCALE),
        timezone_id=setting("identity.timezone", DEFAULT_TIMEZONE),
        viewport={
            "width": int(setting("identity.viewport.width", DEFAULT_VIEWPORT_WIDTH)),
            "height": int(setting("identity.viewport.height", DEFAULT_VIEWPORT_HEIGHT)),
        },
        extra_http_headers=headers,
    )
