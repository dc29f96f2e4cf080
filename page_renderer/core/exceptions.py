"""
Custom exception classes for the Page Renderer service.
"""


class PageRendererError(Exception):
    """
    Base class for all custom exceptions in the Page Renderer service.

    Attributes:
        message (str): A human-readable description of the error.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


# --- Configuration Related Exceptions ---
class ConfigurationError(PageRendererError):
    """
    Raised for errors related to application configuration, such as a
    configured value that cannot be used (unsupported browser type, bad number).
    """
    def __init__(self, message: str):
        super().__init__(message)


# --- Component Related Exceptions ---
class ComponentError(PageRendererError):
    """
    A general base class for errors originating from within a specific component
    (e.g., Renderer, Cache, Enrichment, Extractor).

    Attributes:
        component_name (str): Name of the component where the error originated.
    """
    def __init__(self, component_name: str, message: str):
        full_message = f"Error in component '{component_name}': {message}"
        super().__init__(full_message)
        self.component_name = component_name


class RendererError(ComponentError):
    """Raised for errors specific to the Renderer component (browser launch, navigation, DOM serialization)."""
    def __init__(self, message: str):
        super().__init__(component_name="Renderer", message=message)


class BrowserShuttingDownError(RendererError):
    """Raised when a browser is requested while the service is draining."""
    def __init__(self, message: str = "Browser is shutting down; no new browser work is accepted."):
        super().__init__(message=message)


class CacheError(ComponentError):
    """Raised for errors specific to the response cache (e.g., invalid capacity or TTL)."""
    def __init__(self, message: str):
        super().__init__(component_name="Cache", message=message)


class EnrichmentError(ComponentError):
    """Raised for errors inside a site enrichment hook."""
    def __init__(self, message: str):
        super().__init__(component_name="Enrichment", message=message)


class ExtractorError(ComponentError):
    """Raised for errors specific to the Extractor component (e.g., parsing HTML, metadata lookups)."""
    def __init__(self, message: str):
        super().__init__(component_name="Extractor", message=message)
