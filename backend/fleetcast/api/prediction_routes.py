"""
Prediction Routes - Forecast observability endpoints

Endpoints:
- GET /api/predictions/performance - Accuracy statistics for every algorithm
- GET /api/predictions/performance/{algorithm} - Statistics for one algorithm
- GET /api/predictions/vehicle/{vehicle_id} - Latest predictions for a vehicle
"""

import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from fleetcast.prediction import ForecastAlgorithm, PredictionLifecycleManager

router = APIRouter(prefix="/api/predictions", tags=["predictions"])


def get_lifecycle(request: Request) -> PredictionLifecycleManager:
    """Lifecycle manager of the running process"""
    runtime = getattr(request.app.state, 'runtime', None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Forecast runtime not started")
    return runtime.lifecycle


# ============================================
# Endpoints
# ============================================

@router.get("/performance")
async def get_performance(
    days: Optional[float] = Query(None, gt=0, le=365, description="Trailing window in days (default: configured window)"),
    lifecycle: PredictionLifecycleManager = Depends(get_lifecycle)
):
    """
    Accuracy statistics per algorithm over validated predictions

    Algorithms without validated predictions in the window report zeros.
    """
    stats = await lifecycle.get_all_performance_stats(days)
    ranked = [s for s in stats.values() if s.count > 0]
    best = max(ranked, key=lambda s: s.average_accuracy).algorithm if ranked else None

    return {
        "windowDays": lifecycle.aggregator.window_days if days is None else days,
        "bestAlgorithm": best,
        "algorithms": [stat.to_dict() for stat in stats.values()],
        "timestamp": time.time()
    }


@router.get("/performance/{algorithm}")
async def get_algorithm_performance(
    algorithm: str,
    days: Optional[float] = Query(None, gt=0, le=365),
    lifecycle: PredictionLifecycleManager = Depends(get_lifecycle)
):
    """Accuracy statistics for one algorithm"""
    valid = [a.value for a in ForecastAlgorithm]
    if algorithm not in valid:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown algorithm: {algorithm}. Valid: {valid}"
        )

    stat = await lifecycle.get_performance_stats(algorithm, days)
    return stat.to_dict()


@router.get("/vehicle/{vehicle_id}")
async def get_vehicle_predictions(
    vehicle_id: str,
    limit: int = Query(50, ge=1, le=500),
    lifecycle: PredictionLifecycleManager = Depends(get_lifecycle)
):
    """Latest predictions for one vehicle, newest first"""
    predictions = await lifecycle.get_vehicle_predictions(vehicle_id, limit)

    return {
        "vehicleId": vehicle_id,
        "count": len(predictions),
        "predictions": [p.to_dict() for p in predictions],
        "timestamp": time.time()
    }
