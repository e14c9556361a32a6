from fastapi import APIRouter, Depends

from stilltrue.auth import require_admin
from stilltrue.services.observability import metrics


router = APIRouter(prefix="/internal", tags=["internal"], dependencies=[Depends(require_admin)])


@router.get("/metrics", summary="Internal metrics", description="In-memory counters, per-stage pipeline timers, and recent request traces.")
def get_metrics():
    return metrics.snapshot()


@router.post("/metrics/reset", summary="Reset internal metrics", description="Clears counters, timers and traces (admin-protected when ADMIN_TOKEN is set).")
def reset_metrics():
    metrics.reset()
    return {"status": "ok"}
