"""
Main application file for the Page Renderer API.

This file builds the FastAPI application: logging, CORS, global exception
handlers, the render router, and the lifespan hooks that warm the shared
browser up at startup and drain it at shutdown. `run()` starts the server and
turns the way it stopped into a process exit code.
"""
import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from page_renderer.api.routes import render_routes
from page_renderer.core.config import ConfigurationManager, config_manager
from page_renderer.core.exceptions import PageRendererError
from page_renderer.core.logger import get_logger, setup_logging
from page_renderer.core.manager import RenderManager

logger = get_logger(__name__)

API_VERSION = "0.1.0"
FAULT_TEARDOWN_TIMEOUT_S = 5.0
INVALID_BODY_ERROR = "Invalid request body: expected a JSON object"


async def _abort_after_fault(manager: RenderManager) -> None:
    """Best-effort browser teardown, then hard exit with status 1."""
    try:
        await asyncio.wait_for(manager.browser_manager.shutdown(), timeout=FAULT_TEARDOWN_TIMEOUT_S)
    except Exception as e:
        logger.error(f"Browser teardown after unhandled fault failed: {e}", exc_info=True)
    finally:
        logging.shutdown()
        os._exit(1)


def _install_fault_handler(loop: asyncio.AbstractEventLoop, manager: RenderManager) -> None:
    """
    Treats exceptions that escape to the event loop (unawaited task failures,
    callback errors) as process faults: log, tear the browser down, exit 1.
    """
    def handler(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        exc = context.get("exception")
        logger.critical(f"Unhandled fault in event loop: {context.get('message')}", exc_info=exc)
        manager.browser_manager.begin_draining()
        loop.create_task(_abort_after_fault(manager))

    loop.set_exception_handler(handler)


def _is_render_path(request: Request) -> bool:
    return request.url.path in render_routes.RENDER_PATHS


def _fault_status(request: Request) -> int:
    """Render paths report every failure in-body with 200; other paths use 500."""
    if _is_render_path(request):
        return status.HTTP_200_OK
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(config: Optional[ConfigurationManager] = None,
               render_manager: Optional[RenderManager] = None) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        config (Optional[ConfigurationManager]): Settings source. Defaults to the global `config_manager`.
        render_manager (Optional[RenderManager]): Pre-built orchestrator (tests inject fakes here).
    """
    current_config = config or config_manager
    manager = render_manager or RenderManager(config=current_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _install_fault_handler(asyncio.get_running_loop(), manager)
        if current_config.get("renderer.warm_up", True):
            await manager.browser_manager.warm_up()
        yield
        logger.info("Shutting down: draining browser manager.")
        app.state.shutdown_clean = await manager.browser_manager.shutdown()

    app = FastAPI(
        title="Page Renderer API",
        description="Renders JavaScript-heavy pages in a shared headless browser and returns "
                    "their hydrated HTML, with structured metadata for supported video sites.",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.render_manager = manager
    app.state.shutdown_clean = True

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # --- Global Exception Handlers ---
    # The render handler reports its own failures in-body; these cover everything outside it.
    # Responses on the render paths keep HTTP 200 with `{success: false, error}`.

    @app.exception_handler(PageRendererError)
    async def page_renderer_exception_handler(request: Request, exc: PageRendererError):
        logger.error(
            f"PageRendererError caught: {exc.__class__.__name__} - {exc.message} "
            f"for request: {request.method} {request.url}",
            exc_info=True
        )
        return JSONResponse(
            status_code=_fault_status(request),
            content={"success": False, "error": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"RequestValidationError caught for: {request.method} {request.url}. Errors: {exc.errors()}")
        if _is_render_path(request):
            return JSONResponse(status_code=status.HTTP_200_OK, content={"success": False, "error": INVALID_BODY_ERROR})
        return JSONResponse(
            status_code=422,
            content={"success": False, "error": "Request validation failed", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.critical(
            f"Generic unhandled exception caught: {exc.__class__.__name__} - {str(exc)} "
            f"for request: {request.method} {request.url}",
            exc_info=True
        )
        return JSONResponse(
            status_code=_fault_status(request),
            content={"success": False, "error": "An unexpected server error occurred."},
        )

    app.include_router(render_routes.router, tags=["Rendering"])

    @app.get("/", tags=["General"], summary="API Root Endpoint")
    async def read_root():
        return {
            "message": "Page Renderer API",
            "version": app.version,
            "documentation_url": app.docs_url,
        }

    return app


class RenderServer(uvicorn.Server):
    """
    uvicorn server that puts the browser manager into draining state as soon
    as a termination signal arrives, before in-flight requests finish.
    """
    def __init__(self, config: uvicorn.Config, manager: RenderManager):
        super().__init__(config)
        self.render_manager = manager

    def handle_exit(self, sig, frame) -> None:
        logger.info(f"Received signal {sig}; rejecting new browser work.")
        self.render_manager.browser_manager.begin_draining()
        super().handle_exit(sig, frame)


def run(config: Optional[ConfigurationManager] = None) -> int:
    """
    Starts the HTTP server and blocks until it stops.

    Returns:
        int: 0 after a graceful signal-triggered shutdown, 1 if the server
             crashed or the browser could not be shut down cleanly.
    """
    current_config = config or config_manager
    setup_logging(current_config)
    application = create_app(current_config)
    manager: RenderManager = application.state.render_manager

    host = current_config.get("server.host", "0.0.0.0")
    port = int(current_config.get("server.port", 3050))
    server = RenderServer(uvicorn.Config(application, host=host, port=port, log_config=None), manager)

    logger.info(f"Playwright extraction server running on port {port}")
    try:
        server.run()
    except Exception as e:
        logger.critical(f"Server terminated by unhandled fault: {e}", exc_info=True)
        return 1

    if not application.state.shutdown_clean:
        logger.error("Browser shutdown did not complete cleanly.")
        return 1
    return 0


app = create_app()


if __name__ == "__main__":
    sys.exit(run())
