"""
Database initialization and session management for Sentinel.

The database is optional: it backs the ``database`` metric source (reads from
``system_metrics``) and anomaly persistence (writes to ``anomaly_detections``).
Nothing here is touched unless ``SENTINEL_DATABASE_URL`` is set.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import Session, sessionmaker

from config import settings
from db_models import Base

log = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _ensure_postgres_database_exists(url: URL) -> None:
    target_db = (url.database or "").strip()
    if not target_db:
        return
    if not re.fullmatch(r"[A-Za-z0-9_]+", target_db):
        raise RuntimeError(f"Invalid database name in SENTINEL_DATABASE_URL: {target_db!r}")

    admin_engine = create_engine(url.set(database="postgres"), isolation_level="AUTOCOMMIT", pool_pre_ping=True)
    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": target_db},
            ).scalar()
            if not exists:
                log.info("Creating database %s", target_db)
                conn.exec_driver_sql(f'CREATE DATABASE "{target_db}"')
    finally:
        admin_engine.dispose()


def _engine_options(url: URL) -> Dict[str, Any]:
    if url.drivername.startswith("sqlite"):
        # sqlite pools ignore sizing options; sessions are used from worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": settings.db_pool_recycle,
    }


def init_database(database_url: Optional[str] = None) -> None:
    global _engine, _session_factory
    if _engine is not None:
        return
    raw = database_url or settings.database_url
    if not raw:
        raise RuntimeError("SENTINEL_DATABASE_URL is not configured")
    url = make_url(raw)
    if url.drivername.startswith("postgresql"):
        _ensure_postgres_database_exists(url)
    _engine = create_engine(url, pool_pre_ping=True, **_engine_options(url))
    _session_factory = sessionmaker(bind=_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    log.info("Database engine ready (%s)", url.render_as_string(hide_password=True))


@contextmanager
def get_db_session() -> Iterator[Session]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized")
    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create the ``system_metrics`` and ``anomaly_detections`` tables if missing."""
    if _engine is None:
        raise RuntimeError("Database not initialized")
    Base.metadata.create_all(bind=_engine)


def dispose_database() -> None:
    global _engine, _session_factory
    _session_factory = None
    if _engine is not None:
        _engine.dispose()
        _engine = None
