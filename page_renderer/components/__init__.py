"""
Components sub-package for the Page Renderer service.

This package contains the building blocks the render orchestrator combines:
the shared browser and page settle stages, the response cache, site
enrichment hooks and HTML metadata extractors.
"""
from .renderer.playwright_manager import PlaywrightManager
from .cache.response_cache import ResponseCache
from .enrichment.video_site import VideoSiteEnricher
from .extractor.basic_parser import BasicParser
from .extractor.metadata_parser import VideoMetadataParser

__all__ = [
    "PlaywrightManager",
    "ResponseCache",
    "VideoSiteEnricher",
    "BasicParser",
    "VideoMetadataParser",
]
