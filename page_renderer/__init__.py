"""
Page Renderer: a local HTTP service that renders JavaScript-heavy pages in a
shared headless browser and returns their hydrated HTML.
"""
__version__ = "0.1.0"
