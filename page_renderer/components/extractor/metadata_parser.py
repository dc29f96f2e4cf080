"""
Structured metadata extraction for video watch pages.

`VideoMetadataParser` resolves each metadata field from an ordered list of
sources and keeps the first non-empty value. Sources are, in priority order,
the page's player-data object (read from the live page by the enrichment hook),
rendered DOM elements, and finally meta tags that are present even when
client-side rendering never finished.
"""
from typing import Any, Dict, List, Optional, Tuple

from page_renderer.components.extractor.basic_parser import BasicParser
from page_renderer.core.exceptions import ExtractorError
from page_renderer.core.logger import get_logger

logger = get_logger(__name__)

METADATA_FIELDS = ("title", "description", "channel", "published", "viewCount", "duration", "keywords")

DESCRIPTION_LIMIT = 4000
TRUNCATION_MARKER = "…"

# Each source is one of:
#   ("player", "dotted.path")        value from the player-data object
#   ("css", "selector")              text of the first matching element
#   ("attr", "selector", "attr")     attribute of the first matching element
#   ("meta", "attribute", "value")   content of a <meta> tag
#   ("title",)                       the document <title>
FIELD_SOURCES: Dict[str, List[Tuple[str, ...]]] = {
    "title": [
        ("player", "videoDetails.title"),
        ("css", "h1.ytd-watch-metadata yt-formatted-string"),
        ("css", "#title h1"),
        ("css", "h1.title"),
        ("meta", "property", "og:title"),
        ("meta", "name", "title"),
        ("title",),
    ],
    "description": [
        ("player", "videoDetails.shortDescription"),
        ("css", "#description-inline-expander yt-attributed-string"),
        ("css", "#description-inline-expander"),
        ("css", "#description yt-formatted-string"),
        ("css", "#description"),
        ("meta", "property", "og:description"),
        ("meta", "name", "description"),
    ],
    "channel": [
        ("player", "videoDetails.author"),
        ("css", "ytd-video-owner-renderer #channel-name a"),
        ("css", "#owner #channel-name a"),
        ("css", "ytd-channel-name a"),
        ("attr", "span[itemprop='author'] link[itemprop='name']", "content"),
        ("attr", "link[itemprop='name']", "content"),
    ],
    "published": [
        ("player", "microformat.playerMicroformatRenderer.publishDate"),
        ("meta", "itemprop", "datePublished"),
        ("meta", "itemprop", "uploadDate"),
        ("css", "#info-strings yt-formatted-string"),
    ],
    "viewCount": [
        ("player", "videoDetails.viewCount"),
        ("meta", "itemprop", "interactionCount"),
        ("css", "#info span.view-count"),
        ("css", ".view-count"),
    ],
    "duration": [
        ("player", "videoDetails.lengthSeconds"),
        ("meta", "itemprop", "duration"),
        ("css", ".ytp-time-duration"),
    ],
    "keywords": [
        ("player", "videoDetails.keywords"),
        ("meta", "name", "keywords"),
    ],
}


def format_duration(seconds: Any) -> str:
    """Formats a second count as M:SS or H:MM:SS. Non-numeric input is returned as text."""
    try:
        total = int(seconds)
    except (TypeError, ValueError):
        return str(seconds)
    hours, remainder = divmod(max(total, 0), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def truncate_description(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    """Cuts `text` to `limit` characters and appends the truncation marker if it was longer."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def _lookup_path(data: Optional[Dict[str, Any]], dotted: str) -> Any:
    node: Any = data
    for part in dotted.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item).strip() for item in value if str(item).strip())
    return str(value).strip()


class VideoMetadataParser(BasicParser):
    """
    Extracts `ExtractedMetadata` fields from a rendered watch page.

    Attributes:
        player_data (Optional[Dict[str, Any]]): The page's player-data global, if it was present.
        description_limit (int): Maximum length of the description field, in characters.
    """
    def __init__(self, html_content: str, player_data: Optional[Dict[str, Any]] = None,
                 description_limit: int = DESCRIPTION_LIMIT):
        super().__init__(html_content)
        self.player_data = player_data if isinstance(player_data, dict) else None
        self.description_limit = description_limit

    def _resolve_source(self, field: str, source: Tuple[str, ...]) -> str:
        kind = source[0]
        if kind == "player":
            value = _lookup_path(self.player_data, source[1])
            if field == "duration" and value not in (None, ""):
                return format_duration(value)
            return _as_text(value)
        if kind == "css":
            return _as_text(self.select_text(source[1]))
        if kind == "attr":
            return _as_text(self.select_attribute(source[1], source[2]))
        if kind == "meta":
            return _as_text(self.get_meta(source[1], source[2]))
        if kind == "title":
            title = _as_text(self.get_title())
            if title.endswith(" - YouTube"):
                title = title[: -len(" - YouTube")].strip()
            return title
        raise ExtractorError(f"Unknown metadata source kind '{kind}' for field '{field}'.")

    def get_field(self, field: str) -> str:
        """Returns the first non-empty value for `field`, or "" if no source has one."""
        sources = FIELD_SOURCES.get(field)
        if sources is None:
            raise ExtractorError(f"Unknown metadata field '{field}'.")
        for source in sources:
            value = self._resolve_source(field, source)
            if value:
                return value
        return ""

    def get_metadata(self) -> Dict[str, str]:
        """
        Returns every metadata field as a string ("" when unavailable).

        The description is truncated to `description_limit` characters plus a marker.
        """
        metadata = {field: self.get_field(field) for field in METADATA_FIELDS}
        metadata["description"] = truncate_description(metadata["description"], self.description_limit)
        logger.debug(f"Extracted metadata fields: {[k for k, v in metadata.items() if v]}")
        return metadata
