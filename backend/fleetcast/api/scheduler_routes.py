"""
Scheduler Routes - Periodic task status

Endpoints:
- GET /api/scheduler/status - Runtime, task and service statistics
"""

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(prefix="/api/scheduler", tags=["scheduler"])


@router.get("/status")
async def get_scheduler_status(request: Request):
    """Statistics of the generation, validation and simulation tasks"""
    runtime = getattr(request.app.state, 'runtime', None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Forecast runtime not started")
    return runtime.get_status()
