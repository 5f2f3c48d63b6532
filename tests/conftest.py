"""Pytest fixtures for testing"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from bonus_manager.api.dependencies import get_snapshot_cache
from bonus_manager.api.main import create_app
from bonus_manager.config import Settings
from bonus_manager.domain.models import Container, FormField, Snapshot
from bonus_manager.engine.snapshot_cache import SnapshotCache
from bonus_manager.infrastructure.surface.base import Acknowledgment, AcknowledgmentPredicate, Prompt

LOGIN_URL = "https://tracker.test/login.php?returnto=%2Fstore.php"
STORE_URL = "https://tracker.test/store.php"
HOME_URL = "https://tracker.test/index.php"

LOGIN_FORM = Container(
    index=0,
    text="Log in Email Password Remember me",
    controls=("Log in",),
    fields=(
        FormField(tag="input", type="email", name="email"),
        FormField(tag="input", type="password", name="password"),
    ),
    action="/takelogin.php",
    method="post",
)

DONATE_FORM = Container(
    index=0,
    text="Millionaire's Club Donate up to 2,000 points to the vault",
    controls=("Donate",),
    fields=(FormField(tag="input", type="number", name="donation", placeholder="Points"),),
)

VIP_FORM = Container(
    index=1,
    text="VIP Status Buy weeks of VIP",
    controls=("4 weeks", "8 weeks", "12 weeks", "Max me out!"),
)

UPLOAD_FORM = Container(
    index=2,
    text="Upload credit Exchange points for GB of upload",
    controls=("Exchange",),
    fields=(FormField(tag="input", type="text", name="points"),),
)

STORE_FORMS = (DONATE_FORM, VIP_FORM, UPLOAD_FORM)

CONFIRM = Prompt(text="Are you sure you want to spend these points?", controls=("Yes", "No"))


def ack(kind: str, status: int = 200, body: str = '{"success": true}') -> Acknowledgment:
    return Acknowledgment(url=f"https://tracker.test/json/bonusBuy.php?spendtype={kind}", status=status, body=body)


@dataclass
class ClickScript:
    """What the fake page does when a control is clicked"""

    prompt: Optional[Prompt] = CONFIRM
    acknowledgment: Optional[Acknowledgment] = None
    follow_up: Optional[Prompt] = None
    spend: int = 0
    donates: bool = False


class FakeSurface:
    """
    In-memory account site implementing RemoteSurface.

    The store page text is rendered from the current balance, so every
    re-read reflects what accepted clicks spent.
    """

    def __init__(
        self,
        bonus: Optional[int] = 99000,
        containers: Sequence[Container] = STORE_FORMS,
        scripts: Optional[Dict[str, ClickScript]] = None,
        vip_weeks: float = 5,
        donated: bool = False,
        reject_login: bool = False,
        logged_out_store: bool = False,
    ):
        self.bonus = bonus
        self.containers = list(containers)
        self.scripts = scripts or {}
        self.vip_weeks = vip_weeks
        self.donated = donated
        self.reject_login = reject_login
        self.logged_out_store = logged_out_store

        self.url = "about:blank"
        self.logged_in = False
        self.fields: Dict[str, str] = {}
        self.clicks: List[str] = []
        self.prompt_clicks: List[str] = []
        self.captures: List[str] = []
        self.cleared: List[str] = []
        self.disarms = 0
        self.pending_prompts: List[Prompt] = []
        self._script: Optional[ClickScript] = None
        self._predicate: Optional[AcknowledgmentPredicate] = None
        self._ack: Optional[Acknowledgment] = None

    @property
    def current_url(self) -> str:
        return self.url

    async def navigate(self, url: str) -> str:
        if url == STORE_URL and (not self.logged_in or self.logged_out_store):
            url = LOGIN_URL
        self.url = url
        return self.url

    async def settle(self) -> None:
        return None

    async def read_page_text(self) -> str:
        if "/login.php" in self.url:
            return "Log in\nFailed login attempt." if self.reject_login and self.clicks else "Log in"
        if self.bonus is None:
            return "Bonus Point Store\nThe store is being updated."
        lines = [
            "Bonus Point Store",
            f"Bonus Points: {self.bonus:,}",
            f"VIP expires in {self.vip_weeks:g} weeks",
            "Millionaire's Club: donate up to 2,000 points per day",
            "Upload credit costs 500 points per GB",
        ]
        if self.donated:
            lines.append("You have already donated to the Millionaire's Club today.")
        return "\n".join(lines)

    async def read_element_text(self, selector: str) -> Optional[str]:
        return None

    async def list_containers(self) -> List[Container]:
        if "/login.php" in self.url:
            return [LOGIN_FORM]
        if self.url == STORE_URL:
            return list(self.containers)
        return []

    async def set_field_value(self, container_index: int, field_key: str, value: str) -> None:
        self.fields[field_key] = value

    async def click_control(self, container_index: int, label: str) -> None:
        self.clicks.append(label)
        if "/login.php" in self.url:
            if not self.reject_login:
                self.logged_in = True
                self.url = HOME_URL
            return

        self._script = self.scripts.get(label, ClickScript(prompt=None))
        self._ack = None
        if self._script.prompt is not None:
            self.pending_prompts.append(self._script.prompt)

    async def wait_for_prompt(self, timeout_ms: int) -> Optional[Prompt]:
        return self.pending_prompts.pop(0) if self.pending_prompts else None

    async def click_prompt_control(self, label: str) -> None:
        self.prompt_clicks.append(label)
        script, self._script = self._script, None
        if script is None or label not in ("Yes", "OK"):
            return

        if script.acknowledgment is not None and self._predicate and self._predicate(script.acknowledgment):
            self._ack = script.acknowledgment
        if script.follow_up is not None:
            self.pending_prompts.append(script.follow_up)
        if script.acknowledgment is None or not script.acknowledgment.rejected:
            self.bonus -= script.spend
            self.donated = self.donated or script.donates

    async def clear_prompts(self) -> List[str]:
        stale = [p.text for p in self.pending_prompts]
        self.cleared.extend(stale)
        self.pending_prompts = []
        return stale

    def arm_acknowledgment(self, predicate: AcknowledgmentPredicate) -> None:
        self._predicate = predicate
        self._ack = None

    def disarm_acknowledgment(self) -> None:
        self.disarms += 1
        self._predicate = None
        self._ack = None

    async def await_acknowledgment(self, timeout_ms: int) -> Optional[Acknowledgment]:
        result, self._ack, self._predicate = self._ack, None, None
        return result

    async def capture(self, directory: Path, label: str, containers: Sequence[Container] = ()) -> Dict[str, str]:
        self.captures.append(label)
        return {"dir": str(Path(directory) / label)}


def opener_for(surface: FakeSurface):
    """open_surface replacement that always yields the given fake"""

    @asynccontextmanager
    async def open_surface(settings: Settings):
        yield surface

    return open_surface


@pytest.fixture
def make_settings():
    """Settings isolated from the environment and .env"""

    def factory(**overrides) -> Settings:
        values = dict(
            email="reader@example.test",
            password="hunter2",
            login_url=LOGIN_URL,
            store_url=STORE_URL,
            capture_debug=False,
            action_delay_min_ms=0,
            action_delay_max_ms=0,
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest.fixture
def spending_scripts() -> Dict[str, ClickScript]:
    """Happy-path site: every spend control confirms and acknowledges"""
    return {
        "Donate": ClickScript(acknowledgment=ack("millionaires"), spend=2000, donates=True),
        "4 weeks": ClickScript(acknowledgment=ack("VIP"), spend=5000),
        "8 weeks": ClickScript(acknowledgment=ack("VIP"), spend=10000),
        "12 weeks": ClickScript(acknowledgment=ack("VIP"), spend=15000),
        "Exchange": ClickScript(acknowledgment=ack("upload"), spend=2000),
    }


def make_snapshot(**overrides) -> Snapshot:
    values = dict(
        bonus_points=99000,
        threshold=98000,
        target=90000,
        max_cap=99999,
        donated_today=False,
        max_daily_donation=2000,
        vip_weeks_remaining=5.0,
        checked_at=datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Snapshot(**values)


@pytest.fixture
def client_factory():
    """FastAPI test client whose snapshot cache is the one given"""

    def factory(cache: SnapshotCache) -> TestClient:
        app = create_app()
        app.dependency_overrides[get_snapshot_cache] = lambda: cache
        return TestClient(app)

    return factory
