"""
FastAPI application factory exposing the save and collection routers.

The host application supplies the TypeRegistry describing its entity models.
"""

from fastapi import FastAPI, Request
import logging
import time
import uuid
from typing import Optional

from saveable.config import SaveableSettings, get_settings
from saveable.core.error_handlers import setup_error_handlers
from saveable.core.logging import configure_logging
from saveable.core.registry import TypeRegistry

logger = logging.getLogger(__name__)


def create_app(registry: TypeRegistry, settings: Optional[SaveableSettings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        registry: Entity types that may act as savers, saveables or owners
        settings: Optional settings; defaults to the environment-derived instance

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level.value, settings.log_format)

    app = FastAPI(title="saveable")
    app.state.registry = registry
    app.state.settings = settings

    setup_error_handlers(app)

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Log requests and responses with timing information."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        response = await call_next(request)

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({processing_time:.2f}ms)",
            extra={
                'request_id': request_id,
                'status_code': response.status_code,
                'processing_time_ms': processing_time
            }
        )
        return response

    from saveable.api.saves_endpoints import router as saves_router
    from saveable.api.collections_endpoints import router as collections_router
    app.include_router(saves_router)
    app.include_router(collections_router)

    return app
