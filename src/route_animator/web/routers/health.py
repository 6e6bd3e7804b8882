from typing import Annotated

from fastapi import APIRouter, Depends

from route_animator import __version__
from route_animator.web.dependencies import get_orchestrator
from route_animator.web.workers.export import ExportOrchestrator

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("")
async def health(orchestrator: Annotated[ExportOrchestrator, Depends(get_orchestrator)]) -> dict:
    return {
        "status": "ok",
        "version": __version__,
        "tier": orchestrator.strategy.name,
        "capabilities": orchestrator.capabilities.to_dict(),
    }


__all__ = ["router"]
