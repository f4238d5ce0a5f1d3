# API endpoints and routers

from .saves_endpoints import router as saves_router
from .collections_endpoints import router as collections_router

__all__ = [
    "saves_router",
    "collections_router",
]
