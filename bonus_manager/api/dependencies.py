"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache

from fastapi import Request

from bonus_manager.config import settings
from bonus_manager.engine.runner import fetch_snapshot
from bonus_manager.engine.snapshot_cache import SnapshotCache


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


@lru_cache
def get_snapshot_cache() -> SnapshotCache:
    """Process-wide snapshot cache backed by a read-only browser session"""
    read_only = settings.model_copy(update={"apply": False, "snapshot_only": True})
    return SnapshotCache(lambda: fetch_snapshot(read_only), ttl_seconds=settings.snapshot_ttl_seconds)
