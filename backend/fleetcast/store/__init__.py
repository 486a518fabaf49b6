"""
Store package: persistence collaborator interface and backends

Backends:
- InMemoryStore: process-local dicts (development, demo fleet, tests)
- SqlStore: SQLAlchemy tables (any supported database)
"""

from datetime import timedelta

from .base import (
    ENTITY_KEYS,
    ENTITY_MODELS,
    EntityType,
    Store,
    StoreError,
)
from .memory import InMemoryStore
from .sql_store import SqlStore


def create_store(config: dict = None, now=None) -> Store:
    """
    Build the backend named by `store.backend` ('memory' or 'sql')

    Args:
        config: The `store` configuration section
        now: Optional time source for TTL purging
    """
    config = config or {}
    retention = timedelta(days=config.get('predictionRetentionDays', 7))
    backend = config.get('backend', 'memory')

    if backend == 'memory':
        return InMemoryStore(prediction_retention=retention, now=now)
    if backend == 'sql':
        return SqlStore(config.get('databaseUrl'), prediction_retention=retention, now=now)
    raise ValueError(f"Unknown store backend: {backend}")


__all__ = [
    'ENTITY_KEYS',
    'ENTITY_MODELS',
    'EntityType',
    'Store',
    'StoreError',
    'InMemoryStore',
    'SqlStore',
    'create_store',
]
