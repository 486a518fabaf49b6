"""
Database Configuration and Session Management

This module provides the SQLAlchemy engine, session factory and
table initialization used by the SQL store backend.
"""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

# Default location for the SQLite file
DATA_DIR = Path(__file__).parent.parent.parent / "data"

DEFAULT_DATABASE_URL = f"sqlite:///{DATA_DIR}/fleetcast.db"

# Base class for ORM models
Base = declarative_base()


def create_db_engine(url: str = None, echo: bool = False) -> Engine:
    """
    Create an engine for `url` (default: SQLite file under data/)

    Args:
        url: SQLAlchemy database URL
        echo: Log emitted SQL
    """
    url = url or DEFAULT_DATABASE_URL
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # sessions run in executor threads
        if url == DEFAULT_DATABASE_URL:
            DATA_DIR.mkdir(exist_ok=True)

    return create_engine(url, connect_args=connect_args, echo=echo)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to `engine`"""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine):
    """
    Initialize database - create all tables

    Called by the SQL store on construction so all tables exist.
    """
    # Import all models to ensure they're registered with Base
    from fleetcast.database import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
