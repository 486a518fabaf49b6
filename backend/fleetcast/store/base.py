"""
Store Interface

Abstract persistence collaborator used by the forecasting core. Backends
provide find / insert / update-by-filter operations and purge expired
predictions on their own (store-native TTL); the core never deletes.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel

from fleetcast.models import VALIDATION_FIELDS, Prediction, Route, Vehicle, VehicleStatus


class EntityType(str, Enum):
    VEHICLE = "vehicle"
    ROUTE = "route"
    PREDICTION = "prediction"


ENTITY_MODELS: Dict[EntityType, Type[BaseModel]] = {
    EntityType.VEHICLE: Vehicle,
    EntityType.ROUTE: Route,
    EntityType.PREDICTION: Prediction,
}

ENTITY_KEYS: Dict[EntityType, str] = {
    EntityType.VEHICLE: "vehicle_id",
    EntityType.ROUTE: "route_id",
    EntityType.PREDICTION: "prediction_id",
}


class StoreError(RuntimeError):
    """Backend failure; callers treat it as transient"""


def entity_id(entity_type: EntityType, entity: BaseModel) -> str:
    return getattr(entity, ENTITY_KEYS[EntityType(entity_type)])


def matches(entity: BaseModel, criteria: Optional[Dict[str, Any]]) -> bool:
    """True when every attribute named in `criteria` equals its value"""
    for key, expected in (criteria or {}).items():
        actual = getattr(entity, key, None)
        if isinstance(expected, Enum):
            expected = expected.value
        if isinstance(actual, Enum):
            actual = actual.value
        if actual != expected:
            return False
    return True


def apply_patch(entity: BaseModel, patch: Dict[str, Any]) -> BaseModel:
    """Validated copy of `entity` with `patch` applied"""
    data = entity.model_dump()
    for key, value in patch.items():
        data[key] = value.model_dump() if isinstance(value, BaseModel) else value
    return type(entity).model_validate(data)


def update_guard(entity_type: EntityType,
                 patch: Dict[str, Any],
                 where: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Effective `where` for an update, after checking the patch

    Predictions only accept the validation fields, and only while they
    are still unvalidated.

    Raises:
        ValueError: the patch touches a field a prediction never changes
    """
    criteria = dict(where or {})
    if EntityType(entity_type) != EntityType.PREDICTION:
        return criteria

    frozen = sorted(set(patch) - VALIDATION_FIELDS)
    if frozen:
        raise ValueError(f"Prediction fields cannot be updated: {', '.join(frozen)}")
    criteria['actual_value'] = None
    return criteria


class Store(ABC):
    """
    Persistence collaborator

    All methods are coroutines. Implementations raise StoreError (or any
    backend exception) on failure; the schedulers catch it per tick.

    Args:
        prediction_retention: How long a prediction is kept after expiry
            before the store purges it
    """

    def __init__(self, prediction_retention: timedelta = timedelta(days=7)):
        self.prediction_retention = prediction_retention

    @abstractmethod
    async def find(self,
                   entity_type: EntityType,
                   filter: Optional[Dict[str, Any]] = None,
                   limit: Optional[int] = None) -> List[BaseModel]:
        """Entities matching every key of `filter`"""

    async def find_active(self,
                          entity_type: EntityType,
                          filter: Optional[Dict[str, Any]] = None,
                          limit: Optional[int] = None) -> List[BaseModel]:
        """Entities in 'active' status matching `filter`"""
        criteria = dict(filter or {})
        criteria['status'] = VehicleStatus.ACTIVE.value
        return await self.find(entity_type, criteria, limit)

    @abstractmethod
    async def get_by_id(self, entity_type: EntityType, entity_id: str) -> Optional[BaseModel]:
        """Entity with the given id, or None"""

    @abstractmethod
    async def insert(self, entity_type: EntityType, entity: BaseModel) -> str:
        """Insert one entity and return its id"""

    @abstractmethod
    async def insert_many(self, entity_type: EntityType, entities: List[BaseModel]) -> List[str]:
        """Insert several entities in one batch"""

    @abstractmethod
    async def update_by_id(self,
                           entity_type: EntityType,
                           entity_id: str,
                           patch: Dict[str, Any],
                           where: Optional[Dict[str, Any]] = None) -> bool:
        """
        Atomically apply `patch` when the entity exists and matches `where`

        Prediction updates are restricted by update_guard().

        Returns:
            True when the entity was updated
        """

    @abstractmethod
    async def find_expired_unvalidated(self, now: datetime, limit: Optional[int] = None) -> List[Prediction]:
        """Predictions with expires_at <= now and no actual value"""

    @abstractmethod
    async def find_validated(self, algorithm: str, since: datetime) -> List[Prediction]:
        """Validated predictions of `algorithm` with validated_at >= since"""

    @abstractmethod
    async def find_predictions_for_vehicle(self, vehicle_id: str, limit: int = 50) -> List[Prediction]:
        """Latest predictions for one vehicle, newest first"""

    def is_purgeable(self, prediction: Prediction, now: datetime) -> bool:
        """TTL rule shared by backends"""
        return prediction.expires_at + self.prediction_retention < now
