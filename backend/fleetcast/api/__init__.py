"""
API Routes Package

This module exports all FastAPI routers of the fleet forecasting service.
"""

from .prediction_routes import router as prediction_router
from .scheduler_routes import router as scheduler_router

__all__ = [
    "prediction_router",
    "scheduler_router",
]
