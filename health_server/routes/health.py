"""Liveness and sweep status."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..services.background_services import get_background_manager

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> JSONResponse:
    settings = get_settings()
    sweep = get_background_manager().reminder_sweep
    last_report = sweep.last_report if sweep else None

    return JSONResponse({
        "ok": True,
        "app": settings.app_name,
        "version": settings.app_version,
        "sweep": {
            "enabled": settings.sweep_enabled,
            "running": bool(sweep and sweep.running),
            "last_tick": last_report.model_dump(mode="json") if last_report else None,
        },
    })


__all__ = ["router"]
