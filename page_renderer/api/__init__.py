"""
API sub-package for the Page Renderer service.

This package contains the FastAPI application, the render routes and the
pydantic request/response models. Import `api.main` for the application
(`app`, `create_app`, `run`) and `api.routes` for the routers.
"""

__all__ = []
