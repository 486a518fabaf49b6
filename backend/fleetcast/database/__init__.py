"""
Database package: SQLAlchemy engine, sessions and ORM tables
"""

from .database import (
    DEFAULT_DATABASE_URL,
    Base,
    create_db_engine,
    create_session_factory,
    init_db,
)
from .models import PredictionRecord, RouteRecord, VehicleRecord

__all__ = [
    'DEFAULT_DATABASE_URL',
    'Base',
    'create_db_engine',
    'create_session_factory',
    'init_db',
    'PredictionRecord',
    'RouteRecord',
    'VehicleRecord',
]
