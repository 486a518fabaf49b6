"""
SQLAlchemy ORM Models

Tables backing the SQL store. Each row keeps the full entity as a JSON
payload plus the columns the store filters on.
"""

from sqlalchemy import JSON, Column, DateTime, Float, Index, String

from .database import Base


class VehicleRecord(Base):
    """Fleet vehicle"""
    __tablename__ = "vehicles"

    vehicle_id = Column(String, primary_key=True)
    route_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, index=True)

    payload = Column(JSON, nullable=False)


class RouteRecord(Base):
    """Route with its stop sequences"""
    __tablename__ = "routes"

    route_id = Column(String, primary_key=True)

    payload = Column(JSON, nullable=False)


class PredictionRecord(Base):
    """
    Forecast record

    Timestamps are naive UTC. Rows are purged once expires_at is older
    than the store's retention window.
    """
    __tablename__ = "predictions"

    prediction_id = Column(String, primary_key=True)
    vehicle_id = Column(String, nullable=False, index=True)
    route_id = Column(String, nullable=False)
    algorithm = Column(String, nullable=False, index=True)

    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    actual_value = Column(Float, nullable=True)
    accuracy = Column(Float, nullable=True)
    validated_at = Column(DateTime, nullable=True, index=True)

    payload = Column(JSON, nullable=False)

    __table_args__ = (
        Index('idx_prediction_expiry_actual', 'expires_at', 'actual_value'),
        Index('idx_prediction_algorithm_validated', 'algorithm', 'validated_at'),
    )
