"""
Extractor component for the Page Renderer service.

This sub-package parses serialized HTML (with BeautifulSoup) into structured
metadata and renders that metadata back into a human-readable summary panel.
"""
from .basic_parser import BasicParser
from .metadata_parser import VideoMetadataParser, METADATA_FIELDS, truncate_description
from .summary_panel import build_summary_panel

__all__ = [
    "BasicParser",
    "VideoMetadataParser",
    "METADATA_FIELDS",
    "truncate_description",
    "build_summary_panel",
]
