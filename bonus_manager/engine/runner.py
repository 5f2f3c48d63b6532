"""Run entry points shared by the CLI and the snapshot API"""

import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable, Union

from bonus_manager.config import Settings
from bonus_manager.domain.exceptions import DomainException, ExtractionError, MissingCredentialsError
from bonus_manager.domain.models import RunSummary
from bonus_manager.engine.orchestrator import SpendOrchestrator
from bonus_manager.engine.session import AccountSession, SnapshotRead
from bonus_manager.infrastructure.surface.base import RemoteSurface
from bonus_manager.infrastructure.surface.playwright_surface import open_playwright_surface

logger = logging.getLogger(__name__)

SurfaceOpener = Callable[[Settings], AbstractAsyncContextManager[RemoteSurface]]

MISSING_CREDENTIALS_MESSAGE = "Missing credentials. Set MAM_EMAIL (or MAM_USERNAME) and MAM_PASSWORD in .env."


async def _first_read(session: AccountSession) -> SnapshotRead:
    """First state read; a failure here is fatal, so leave artifacts behind first"""
    try:
        return await session.read_snapshot(reopen=True)
    except ExtractionError:
        if session.settings.capture_debug:
            try:
                artifacts = await session.capture("bonus-not-found")
                logger.error("Bonus value not found", extra={"debug": artifacts})
            except (OSError, DomainException) as e:
                logger.warning("Debug capture failed", extra={"error": str(e)})
        raise


async def run_once(
    settings: Settings, open_surface: SurfaceOpener = open_playwright_surface
) -> Union[RunSummary, SnapshotRead]:
    """
    One full invocation: login, first read, then either stop (snapshot mode)
    or walk the spend plan.

    Raises:
        MissingCredentialsError: Checked before any browser is launched
        LoginError: Sign-in rejected
        SessionUnauthenticatedError: Overview redirected to login
        ExtractionError: First bonus read failed
    """
    if not settings.has_credentials:
        raise MissingCredentialsError(MISSING_CREDENTIALS_MESSAGE)

    async with open_surface(settings) as surface:
        session = AccountSession(surface, settings)
        await session.login()
        initial = await _first_read(session)

        if settings.snapshot_only:
            return initial

        logger.info(
            "Starting spend run",
            extra={"apply": settings.apply, "bonus_points": initial.snapshot.bonus_points},
        )
        return await SpendOrchestrator(session, settings).run(initial)


async def fetch_snapshot(settings: Settings, open_surface: SurfaceOpener = open_playwright_surface) -> SnapshotRead:
    """Read-only login + snapshot, used by the HTTP service"""
    if not settings.has_credentials:
        raise MissingCredentialsError(MISSING_CREDENTIALS_MESSAGE)

    async with open_surface(settings) as surface:
        session = AccountSession(surface, settings)
        await session.login()
        return await session.read_snapshot(reopen=True)
