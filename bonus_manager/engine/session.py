"""Account session glue - login, overview navigation and state reads"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Sequence

from bonus_manager.config import Settings
from bonus_manager.domain.exceptions import ExtractionError, LoginError, MissingCredentialsError, SessionUnauthenticatedError
from bonus_manager.domain.extraction import build_snapshot
from bonus_manager.domain.locator import choose_control, pick_best_container
from bonus_manager.domain.models import Container, Extraction, Snapshot
from bonus_manager.infrastructure.observability.metrics import extraction_failures_counter, record_snapshot
from bonus_manager.infrastructure.surface.base import RemoteSurface

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login.php"
LOGIN_FAILURE_HINTS = ("not logged in", "problem logging in", "cookies enabled", "failed login")
LOGIN_ACTION_KEYWORDS = ("log in", "login", "sign in")


@dataclass(frozen=True)
class SnapshotRead:
    """Snapshot plus the extraction evidence behind its bonus value"""

    snapshot: Snapshot
    extraction: Extraction


def _field_key(container: Container, *names: str) -> str | None:
    for form_field in container.fields:
        if form_field.name.lower() in names or form_field.id.lower() in names:
            return form_field.key
    return None


class AccountSession:
    """Owns the remote surface for the duration of one run"""

    def __init__(self, surface: RemoteSurface, settings: Settings):
        self.surface = surface
        self.settings = settings

    async def login(self) -> None:
        """
        Sign in through the login form.

        Raises:
            MissingCredentialsError: Email or password not configured
            LoginError: Login form missing, or the page reports a failed login
        """
        if not self.settings.has_credentials:
            raise MissingCredentialsError(
                "Missing credentials. Set MAM_EMAIL (or MAM_USERNAME) and MAM_PASSWORD in .env."
            )

        await self.surface.navigate(self.settings.login_url)
        with_password = [c for c in await self.surface.list_containers() if _field_key(c, "password")]
        form, _ = pick_best_container(with_password, (), LOGIN_ACTION_KEYWORDS)

        email_key = _field_key(form, "email", "username") if form else None
        password_key = _field_key(form, "password") if form else None
        if form is None or email_key is None or password_key is None:
            raise LoginError("Could not find login fields (email/password).")

        submit = choose_control(form.controls, LOGIN_ACTION_KEYWORDS)
        if submit is None:
            raise LoginError("Could not find the login submit button.")

        await self.surface.set_field_value(form.index, email_key, self.settings.email)
        await self.surface.set_field_value(form.index, password_key, self.settings.password)
        await self.surface.click_control(form.index, submit)
        await self.surface.settle()

        if await self._still_on_login():
            body = (await self.surface.read_page_text()).lower()
            hint = next((h for h in LOGIN_FAILURE_HINTS if h in body), None)
            if hint:
                raise LoginError(f"Login failed or was blocked by site checks (hint: {hint}).", hint=hint)

        logger.info("Logged in", extra={"step": "login", "url": self.surface.current_url})

    async def _still_on_login(self) -> bool:
        if LOGIN_PATH in self.surface.current_url:
            return True
        containers = await self.surface.list_containers()
        return any(_field_key(c, "password") for c in containers)

    async def open_overview(self) -> None:
        """
        Load the store/overview page.

        Raises:
            SessionUnauthenticatedError: Redirected back to the login page
        """
        url = await self.surface.navigate(self.settings.store_url)
        if LOGIN_PATH in url:
            raise SessionUnauthenticatedError("Session is not authenticated when opening the store page.")

    async def read_snapshot(self, reopen: bool = True) -> SnapshotRead:
        """
        Re-open the overview (unless told otherwise) and extract a fresh snapshot.

        Raises:
            ExtractionError: No bonus value on the page
        """
        if reopen:
            await self.open_overview()

        start_time = time.time()
        text = await self.surface.read_page_text()
        structured = await self.surface.read_element_text(self.settings.bonus_selector)

        try:
            snapshot, extraction = build_snapshot(
                text,
                structured_text=structured,
                threshold=self.settings.bonus_threshold,
                target=self.settings.bonus_target,
                max_cap=self.settings.bonus_cap,
                default_max_donation=self.settings.donate_points,
                ceiling=self.settings.bonus_ceiling,
            )
        except ExtractionError:
            extraction_failures_counter.inc()
            raise

        record_snapshot(snapshot, time.time() - start_time)
        logger.info(
            "Snapshot read",
            extra={
                "step": "snapshot",
                "bonus_points": snapshot.bonus_points,
                "donated_today": snapshot.donated_today,
                "vip_weeks_remaining": snapshot.vip_weeks_remaining,
            },
        )
        return SnapshotRead(snapshot=snapshot, extraction=extraction)

    async def capture(self, label: str, containers: Sequence[Container] | None = None) -> Dict[str, str]:
        """Dump page artifacts into the debug directory"""
        if containers is None:
            containers = await self.surface.list_containers()
        return await self.surface.capture(Path(self.settings.debug_dir), label, containers)
