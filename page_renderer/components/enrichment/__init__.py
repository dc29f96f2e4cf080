"""
Site enrichment hooks for the Page Renderer service.

Enrichment runs only for hosts the identity classifier flags as special-cased
and adds consent dismissal plus structured metadata to a render.
"""
from .consent import ConsentResult, dismiss_consent
from .video_site import VideoSiteEnricher

__all__ = [
    "ConsentResult",
    "dismiss_consent",
    "VideoSiteEnricher",
]
