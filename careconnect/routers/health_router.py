from fastapi import APIRouter, Request

from ..core.config import settings
from ..schemas.common.common import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check(request: Request):
    state = request.app.state
    db_ok = getattr(state, "db_init_ok", True)
    scheduler = getattr(state, "scheduler", None)
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=settings.APP_VERSION,
        database="ok" if db_ok else f"error: {getattr(state, 'db_init_error', None)}",
        scheduler="running" if scheduler is not None and scheduler.scheduler.running else "stopped",
    )
