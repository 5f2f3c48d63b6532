"""Snapshot service HTTP client used by the dashboard"""

from datetime import datetime
from typing import Tuple

import httpx

from bonus_manager.config import settings
from bonus_manager.domain.exceptions import SnapshotAPIError
from bonus_manager.domain.models import DonationRecord, PlanStep, Snapshot
from bonus_manager.domain.planner import build_spending_plan


def _parse_snapshot(data: dict) -> Snapshot:
    return Snapshot(
        bonus_points=int(data["bonusPoints"]),
        threshold=int(data["threshold"]),
        target=int(data["target"]),
        max_cap=int(data["maxCap"]),
        donated_today=bool(data["donatedToday"]),
        max_daily_donation=int(data["maxDailyDonation"]),
        vip_weeks_remaining=float(data["vipWeeksRemaining"]),
        checked_at=datetime.fromisoformat(data["checkedAt"]),
        donation_history=tuple(
            DonationRecord(date=datetime.fromisoformat(r["date"]), amount=int(r["amount"]))
            for r in data.get("donationHistory", [])
        ),
    )


class SnapshotClient:
    """Client for the bonus manager's own snapshot API"""

    def __init__(self, base_url: str, timeout: float = 60.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def get_snapshot(self, force_refresh: bool = False) -> Snapshot:
        """
        Fetch the current account snapshot.

        Raises:
            SnapshotAPIError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/v1/snapshot",
                    params={"refresh": "true" if force_refresh else "false"},
                )
                response.raise_for_status()
                return _parse_snapshot(response.json())

            except httpx.TimeoutException as e:
                raise SnapshotAPIError(f"Snapshot API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise SnapshotAPIError(f"Snapshot API error: {e.response.status_code}") from e
            except httpx.TransportError as e:
                raise SnapshotAPIError(f"Snapshot API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise SnapshotAPIError(f"Invalid snapshot data: {e}") from e

    async def get_plan(self, force_refresh: bool = False) -> Tuple[PlanStep, PlanStep, PlanStep]:
        """Plan for the served snapshot, built locally with the shared planner"""
        snapshot = await self.get_snapshot(force_refresh=force_refresh)
        return build_spending_plan(snapshot, settings.planner_config())
