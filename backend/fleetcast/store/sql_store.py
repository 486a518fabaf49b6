"""
SQL Store

SQLAlchemy-backed Store. Sessions are synchronous and run in the default
executor so store calls never block the event loop.

Rows hold the entity as a JSON payload; the indexed columns next to it
exist for filtering. Conditional updates are a single UPDATE statement
guarded by the `where` columns, so two validators racing on the same
prediction cannot both succeed.
"""

import asyncio
import functools
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from fleetcast.database import (
    PredictionRecord,
    RouteRecord,
    VehicleRecord,
    create_db_engine,
    create_session_factory,
    init_db,
)
from fleetcast.models import Prediction
from fleetcast.store.base import (
    ENTITY_KEYS,
    ENTITY_MODELS,
    EntityType,
    Store,
    StoreError,
    apply_patch,
    entity_id,
    matches,
    update_guard,
)


logger = logging.getLogger(__name__)


RECORDS = {
    EntityType.VEHICLE: VehicleRecord,
    EntityType.ROUTE: RouteRecord,
    EntityType.PREDICTION: PredictionRecord,
}


def _naive_utc(value):
    """Datetime columns hold naive UTC"""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _column_value(value):
    if isinstance(value, Enum):
        return value.value
    return _naive_utc(value)


class SqlStore(Store):
    """
    Store over any SQLAlchemy-supported database

    Usage:
        store = SqlStore("sqlite:///data/fleetcast.db")
        vehicles = await store.find_active(EntityType.VEHICLE, limit=100)
    """

    def __init__(self,
                 url: str = None,
                 prediction_retention: timedelta = timedelta(days=7),
                 now: Callable[[], datetime] = None,
                 echo: bool = False):
        super().__init__(prediction_retention)
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.engine = create_db_engine(url, echo=echo)
        self.SessionLocal = create_session_factory(self.engine)
        init_db(self.engine)
        logger.info("SQL store ready at %s", self.engine.url.render_as_string(hide_password=True))

    def close(self):
        self.engine.dispose()

    # =========================================================================
    # Plumbing
    # =========================================================================

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self._session_call, fn, *args, **kwargs))

    def _session_call(self, fn, *args, **kwargs):
        db = self.SessionLocal()
        try:
            result = fn(db, *args, **kwargs)
            db.commit()
            return result
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"{fn.__name__} failed: {e}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _columns(entity_type: EntityType, entity: BaseModel) -> Dict[str, Any]:
        """Filter-column values of `entity`, payload included"""
        record = RECORDS[entity_type]
        values = {'payload': entity.model_dump(mode='json')}
        for name in record.__table__.columns.keys():
            if name == 'payload':
                continue
            values[name] = _column_value(getattr(entity, name))
        return values

    @staticmethod
    def _to_entity(entity_type: EntityType, row) -> BaseModel:
        return ENTITY_MODELS[entity_type].model_validate(row.payload)

    def _purge(self, db):
        cutoff = _naive_utc(self._now() - self.prediction_retention)
        db.execute(delete(PredictionRecord).where(PredictionRecord.expires_at < cutoff))

    # =========================================================================
    # Store API
    # =========================================================================

    async def find(self,
                   entity_type: EntityType,
                   filter: Optional[Dict[str, Any]] = None,
                   limit: Optional[int] = None) -> List[BaseModel]:
        entity_type = EntityType(entity_type)
        return await self._run(self._find, entity_type, dict(filter or {}), limit)

    def _find(self, db, entity_type, criteria, limit):
        self._purge(db)
        record = RECORDS[entity_type]
        columns = record.__table__.columns.keys()

        query = select(record)
        remaining = {}
        for key, expected in criteria.items():
            if key in columns and key != 'payload':
                query = query.where(getattr(record, key) == _column_value(expected))
            else:
                remaining[key] = expected
        if limit is not None and not remaining:
            query = query.limit(limit)

        results = []
        for row in db.execute(query).scalars():
            entity = self._to_entity(entity_type, row)
            if matches(entity, remaining):
                results.append(entity)
                if limit is not None and len(results) >= limit:
                    break
        return results

    async def get_by_id(self, entity_type: EntityType, entity_id: str) -> Optional[BaseModel]:
        entity_type = EntityType(entity_type)
        return await self._run(self._get_by_id, entity_type, entity_id)

    def _get_by_id(self, db, entity_type, key):
        self._purge(db)
        row = db.get(RECORDS[entity_type], key)
        return self._to_entity(entity_type, row) if row is not None else None

    async def insert(self, entity_type: EntityType, entity: BaseModel) -> str:
        ids = await self.insert_many(entity_type, [entity])
        return ids[0]

    async def insert_many(self, entity_type: EntityType, entities: List[BaseModel]) -> List[str]:
        entity_type = EntityType(entity_type)
        return await self._run(self._insert_many, entity_type, list(entities))

    def _insert_many(self, db, entity_type, entities):
        record = RECORDS[entity_type]
        ids = []
        for entity in entities:
            db.merge(record(**self._columns(entity_type, entity)))
            ids.append(entity_id(entity_type, entity))
        return ids

    async def update_by_id(self,
                           entity_type: EntityType,
                           entity_id: str,
                           patch: Dict[str, Any],
                           where: Optional[Dict[str, Any]] = None) -> bool:
        entity_type = EntityType(entity_type)
        where = update_guard(entity_type, patch, where)
        return await self._run(self._update_by_id, entity_type, entity_id, dict(patch), where)

    def _update_by_id(self, db, entity_type, key, patch, where):
        record = RECORDS[entity_type]
        columns = record.__table__.columns.keys()

        row = db.get(record, key)
        if row is None:
            return False
        current = self._to_entity(entity_type, row)
        if not matches(current, where):
            return False

        updated = apply_patch(current, patch)
        statement = update(record).where(getattr(record, ENTITY_KEYS[entity_type]) == key)
        for name, expected in where.items():
            if name in columns and name != 'payload':
                column = getattr(record, name)
                expected = _column_value(expected)
                statement = statement.where(column.is_(None) if expected is None else column == expected)

        result = db.execute(statement.values(**self._columns(entity_type, updated)))
        return result.rowcount == 1

    async def find_expired_unvalidated(self, now: datetime, limit: Optional[int] = None) -> List[Prediction]:
        return await self._run(self._find_expired_unvalidated, now, limit)

    def _find_expired_unvalidated(self, db, now, limit):
        self._purge(db)
        query = (
            select(PredictionRecord)
            .where(PredictionRecord.expires_at <= _naive_utc(now))
            .where(PredictionRecord.actual_value.is_(None))
            .order_by(PredictionRecord.expires_at)
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(EntityType.PREDICTION, row) for row in db.execute(query).scalars()]

    async def find_validated(self, algorithm: str, since: datetime) -> List[Prediction]:
        return await self._run(self._find_validated, algorithm, since)

    def _find_validated(self, db, algorithm, since):
        self._purge(db)
        query = (
            select(PredictionRecord)
            .where(PredictionRecord.algorithm == algorithm)
            .where(PredictionRecord.accuracy.is_not(None))
            .where(PredictionRecord.validated_at >= _naive_utc(since))
        )
        return [self._to_entity(EntityType.PREDICTION, row) for row in db.execute(query).scalars()]

    async def find_predictions_for_vehicle(self, vehicle_id: str, limit: int = 50) -> List[Prediction]:
        return await self._run(self._find_predictions_for_vehicle, vehicle_id, limit)

    def _find_predictions_for_vehicle(self, db, vehicle_id, limit):
        self._purge(db)
        query = (
            select(PredictionRecord)
            .where(PredictionRecord.vehicle_id == vehicle_id)
            .order_by(PredictionRecord.created_at.desc())
            .limit(limit)
        )
        return [self._to_entity(EntityType.PREDICTION, row) for row in db.execute(query).scalars()]
