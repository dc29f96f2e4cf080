"""
Cache component for the Page Renderer service.

Holds rendered pages in process memory so repeated requests for the same
URL and mode skip the browser entirely.
"""
from .response_cache import ResponseCache, CacheEntry

__all__ = [
    "ResponseCache",
    "CacheEntry",
]
