"""GET /v1/snapshot and GET /v1/plan - read-only views of the account state"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from bonus_manager.api.dependencies import get_request_id, get_snapshot_cache
from bonus_manager.api.v1.schemas import PlanResponse, SnapshotResponse, plan_step_schema, snapshot_response
from bonus_manager.config import settings
from bonus_manager.domain.exceptions import (
    ExtractionError,
    LoginError,
    MissingCredentialsError,
    NavigationError,
    SessionUnauthenticatedError,
)
from bonus_manager.domain.planner import build_spending_plan
from bonus_manager.engine.snapshot_cache import CachedSnapshot, SnapshotCache

router = APIRouter()


async def _load(cache: SnapshotCache, refresh: bool, request_id: str) -> CachedSnapshot:
    """Fetch through the cache and map run-level failures to HTTP errors"""
    try:
        return await cache.get(force_refresh=refresh)

    except MissingCredentialsError as e:
        logging.error(f"Snapshot unavailable: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Account credentials are not configured")

    except (LoginError, SessionUnauthenticatedError, NavigationError, ExtractionError) as e:
        logging.error(f"Snapshot fetch failed: {e}", extra={"request_id": request_id, "error_type": type(e).__name__})
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/snapshot", response_model=SnapshotResponse, response_model_by_alias=True)
async def get_snapshot(
    request: Request,
    refresh: bool = False,
    cache: SnapshotCache = Depends(get_snapshot_cache),
):
    """Current bonus state, served from cache unless refresh is set"""
    cached = await _load(cache, refresh, get_request_id(request))
    read = cached.value
    return snapshot_response(read.snapshot, read.extraction.evidence, fetched_at=cached.fetched_at)


@router.get("/plan", response_model=PlanResponse, response_model_by_alias=True)
async def get_plan(
    request: Request,
    refresh: bool = False,
    cache: SnapshotCache = Depends(get_snapshot_cache),
):
    """
    Spending plan for the cached snapshot.

    Same three slots the CLI would execute; nothing is submitted here.
    """
    cached = await _load(cache, refresh, get_request_id(request))
    snapshot = cached.value.snapshot
    steps = build_spending_plan(snapshot, settings.planner_config())
    return PlanResponse(
        bonus_points=snapshot.bonus_points,
        target=snapshot.target,
        steps=[plan_step_schema(s) for s in steps],
        fetched_at=cached.fetched_at,
    )
