from fastapi import APIRouter

from route_animator.web.routers.exports import router as exports_router
from route_animator.web.routers.health import router as health_router
from route_animator.web.routers.preview import router as preview_router
from route_animator.web.routers.uploads import router as uploads_router

api_router = APIRouter(
    prefix="/api",
)

api_router.include_router(
    exports_router,
)

api_router.include_router(
    preview_router,
)

api_router.include_router(
    uploads_router,
)

api_router.include_router(
    health_router,
)

__all__ = ["api_router"]
