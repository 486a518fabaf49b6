"""
In-Memory Store

Dict-backed Store used for development, the demo fleet and tests.
Entities are copied on the way in and out so callers never share state
with the store. Expired predictions are purged lazily on access.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from fleetcast.models import Prediction
from fleetcast.store.base import (
    EntityType,
    Store,
    apply_patch,
    entity_id,
    matches,
    update_guard,
)


class InMemoryStore(Store):
    """
    Process-local Store

    Every operation completes without awaiting, so each call is atomic
    with respect to other coroutines on the event loop.
    """

    def __init__(self,
                 prediction_retention: timedelta = timedelta(days=7),
                 now: Callable[[], datetime] = None):
        super().__init__(prediction_retention)
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._collections: Dict[EntityType, Dict[str, BaseModel]] = {
            entity_type: {} for entity_type in EntityType
        }

    def load(self, entity_type: EntityType, entities: List[BaseModel]):
        """Synchronously seed a collection"""
        collection = self._collections[EntityType(entity_type)]
        for entity in entities:
            collection[entity_id(entity_type, entity)] = entity.model_copy(deep=True)

    def count(self, entity_type: EntityType) -> int:
        self._purge_expired()
        return len(self._collections[EntityType(entity_type)])

    async def find(self,
                   entity_type: EntityType,
                   filter: Optional[Dict[str, Any]] = None,
                   limit: Optional[int] = None) -> List[BaseModel]:
        self._purge_expired()
        results = [
            entity.model_copy(deep=True)
            for entity in self._collections[EntityType(entity_type)].values()
            if matches(entity, filter)
        ]
        return results[:limit] if limit is not None else results

    async def get_by_id(self, entity_type: EntityType, entity_id: str) -> Optional[BaseModel]:
        self._purge_expired()
        entity = self._collections[EntityType(entity_type)].get(entity_id)
        return entity.model_copy(deep=True) if entity else None

    async def insert(self, entity_type: EntityType, entity: BaseModel) -> str:
        key = entity_id(entity_type, entity)
        self._collections[EntityType(entity_type)][key] = entity.model_copy(deep=True)
        return key

    async def insert_many(self, entity_type: EntityType, entities: List[BaseModel]) -> List[str]:
        collection = self._collections[EntityType(entity_type)]
        keys = []
        for entity in entities:
            key = entity_id(entity_type, entity)
            collection[key] = entity.model_copy(deep=True)
            keys.append(key)
        return keys

    async def update_by_id(self,
                           entity_type: EntityType,
                           entity_id: str,
                           patch: Dict[str, Any],
                           where: Optional[Dict[str, Any]] = None) -> bool:
        where = update_guard(entity_type, patch, where)
        collection = self._collections[EntityType(entity_type)]
        current = collection.get(entity_id)
        if current is None or not matches(current, where):
            return False
        collection[entity_id] = apply_patch(current, patch)
        return True

    async def find_expired_unvalidated(self, now: datetime, limit: Optional[int] = None) -> List[Prediction]:
        self._purge_expired()
        results = [
            p.model_copy(deep=True)
            for p in self._collections[EntityType.PREDICTION].values()
            if p.expires_at <= now and p.actual_value is None
        ]
        results.sort(key=lambda p: p.expires_at)
        return results[:limit] if limit is not None else results

    async def find_validated(self, algorithm: str, since: datetime) -> List[Prediction]:
        self._purge_expired()
        return [
            p.model_copy(deep=True)
            for p in self._collections[EntityType.PREDICTION].values()
            if p.algorithm == algorithm
            and p.accuracy is not None
            and p.validated_at is not None
            and p.validated_at >= since
        ]

    async def find_predictions_for_vehicle(self, vehicle_id: str, limit: int = 50) -> List[Prediction]:
        self._purge_expired()
        results = [
            p.model_copy(deep=True)
            for p in self._collections[EntityType.PREDICTION].values()
            if p.vehicle_id == vehicle_id
        ]
        results.sort(key=lambda p: p.created_at, reverse=True)
        return results[:limit]

    def _purge_expired(self):
        now = self._now()
        predictions = self._collections[EntityType.PREDICTION]
        for key in [key for key, p in predictions.items() if self.is_purgeable(p, now)]:
            del predictions[key]
