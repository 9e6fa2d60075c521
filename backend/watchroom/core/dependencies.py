"""Dependency injection utilities for FastAPI"""

import logging

import asyncpg
from fastapi import Depends, HTTPException

from watchroom.core.config import get_settings
from watchroom.database import get_database_manager
from watchroom.engine import Engine

logger = logging.getLogger(__name__)


def get_db_pool() -> asyncpg.Pool:
    try:
        db_manager = get_database_manager()
    except RuntimeError:
        raise HTTPException(status_code=503, detail="Database not ready") from None
    if not db_manager.is_connected:
        raise HTTPException(status_code=503, detail="Database not ready")
    return db_manager.pool


def get_engine(pool: asyncpg.Pool = Depends(get_db_pool)) -> Engine:
    """Engine bound to the shared pool (dependency injection)"""
    return Engine(pool, get_settings().playlist_write_policy)
