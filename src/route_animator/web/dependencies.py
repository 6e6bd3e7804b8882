from fastapi import Request

from route_animator.config import Settings
from route_animator.web.workers.export import ExportOrchestrator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> ExportOrchestrator:
    return request.app.state.orchestrator


__all__ = ["get_app_settings", "get_orchestrator"]
