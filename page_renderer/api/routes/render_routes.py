"""
API routes for page rendering.

Both render paths share one handler. The legacy path is the one the in-page
extraction tool calls and defaults to the lightweight 'embedded' mode; the
namespaced path defaults to 'container'. Render failures are reported in the
body with HTTP 200, never via the status code.
"""
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from page_renderer.api.models import HealthResponse, RenderRequest, RenderResponse
from page_renderer.core.logger import get_logger
from page_renderer.core.manager import CONTAINER_MODE, EMBEDDED_MODE, RenderManager

logger = get_logger(__name__)

LEGACY_EXTRACT_PATH = "/extract-with-playwright"
EXTRACT_PATH = "/api/playwright/extract"
RENDER_PATHS = (LEGACY_EXTRACT_PATH, EXTRACT_PATH)

router = APIRouter()


def get_render_manager(request: Request) -> RenderManager:
    """Dependency provider: the application-wide RenderManager created in `api/main.py`."""
    return request.app.state.render_manager


async def _handle_render(body: RenderRequest, manager: RenderManager, default_mode: str) -> JSONResponse:
    logger.info(f"Render request: url={body.url!r} mode={body.mode or default_mode} options={body.options.model_dump()}")
    result = await manager.render(
        url=body.url,
        wait_time=body.wait_time,
        mode=body.mode,
        use_cache=body.options.use_cache,
        block_media=body.options.block_media,
        fast_selector=body.options.fast_selector,
        default_mode=default_mode,
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=result)


@router.post(
    LEGACY_EXTRACT_PATH,
    response_model=RenderResponse,
    summary="Render a page (embedded mode by default)",
    description="Renders the URL in a headless browser and returns the hydrated HTML. "
                "Video-site pages additionally return structured metadata.",
)
async def extract_with_playwright(body: RenderRequest, manager: RenderManager = Depends(get_render_manager)):
    return await _handle_render(body, manager, EMBEDDED_MODE)


@router.post(
    EXTRACT_PATH,
    response_model=RenderResponse,
    summary="Render a page (container mode by default)",
    description="Same contract as the legacy path, with the longer container-mode settle window by default.",
)
async def extract(body: RenderRequest, manager: RenderManager = Depends(get_render_manager)):
    return await _handle_render(body, manager, CONTAINER_MODE)


@router.options(LEGACY_EXTRACT_PATH, include_in_schema=False)
@router.options(EXTRACT_PATH, include_in_schema=False)
async def preflight():
    # Real CORS pre-flights are answered by CORSMiddleware; this covers bare OPTIONS probes.
    return Response(status_code=status.HTTP_200_OK)


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(manager: RenderManager = Depends(get_render_manager)):
    return HealthResponse(
        status="draining" if manager.browser_manager.is_draining else "ok",
        browser_connected=manager.browser_manager.is_connected,
        draining=manager.browser_manager.is_draining,
        cache_entries=len(manager.cache),
    )
