"""Spend planner - core business logic turning a snapshot into a priced plan"""

from dataclasses import dataclass
from typing import Tuple

from bonus_manager.domain.models import BLOCKED, DONATE, NOT_NEEDED, READY, UPLOAD, VIP, PlanStep, Snapshot


@dataclass(frozen=True)
class VipTier:
    """Fixed VIP purchase block"""

    weeks: int
    cost: int


# Descending: the first affordable tier is the largest one
VIP_TIERS: Tuple[VipTier, ...] = (
    VipTier(weeks=12, cost=15000),
    VipTier(weeks=8, cost=10000),
    VipTier(weeks=4, cost=5000),
)


@dataclass(frozen=True)
class PlannerConfig:
    """Site limits the planner prices against"""

    vip_week_cap: float = 12.8
    upload_unit: int = 500
    vip_tiers: Tuple[VipTier, ...] = VIP_TIERS


DONATION_TITLE = "Millionaire's Club"
VIP_TITLE = "VIP Extension"
UPLOAD_TITLE = "Upload Credit"


def calculate_overflow(snapshot: Snapshot) -> int:
    """Points above target that should be spent down (never negative)"""
    return max(0, snapshot.bonus_points - snapshot.target)


def affordable_vip_tier(remaining: int, tiers: Tuple[VipTier, ...] = VIP_TIERS) -> VipTier | None:
    """Largest tier whose cost fits in remaining, None below the smallest tier"""
    for tier in tiers:
        if remaining >= tier.cost:
            return tier
    return None


def plan_donation(snapshot: Snapshot, overflow: int) -> PlanStep:
    """
    Donation slot.

    - not-needed without overflow
    - blocked once donated today
    - ready otherwise, capped at the daily maximum
    """
    if overflow <= 0:
        return PlanStep("donation", DONATE, DONATION_TITLE, "No bonus overflow to reduce.", NOT_NEEDED, 0)

    if snapshot.donated_today:
        return PlanStep("donation", DONATE, DONATION_TITLE, "Already donated for the current day.", BLOCKED, 0)

    cost = min(overflow, snapshot.max_daily_donation)
    return PlanStep(
        "donation",
        DONATE,
        DONATION_TITLE,
        f"Donate up to {snapshot.max_daily_donation:,} points today.",
        READY,
        cost,
    )


def plan_vip(snapshot: Snapshot, overflow: int, remaining: int, config: PlannerConfig) -> PlanStep:
    """
    VIP slot priced from the fixed tier table.

    - not-needed without overflow
    - blocked at the VIP week cap
    - not-needed when the donation used up the overflow
    - blocked when even the smallest tier is unaffordable
    """
    if overflow <= 0:
        return PlanStep("vip", VIP, VIP_TITLE, "No bonus overflow to reduce.", NOT_NEEDED, 0)

    if snapshot.vip_weeks_remaining >= config.vip_week_cap:
        return PlanStep(
            "vip", VIP, VIP_TITLE, f"VIP time is already at the {config.vip_week_cap:g} week cap.", BLOCKED, 0
        )

    if remaining <= 0:
        return PlanStep("vip", VIP, VIP_TITLE, "No overflow remains after donation.", NOT_NEEDED, 0)

    tier = affordable_vip_tier(remaining, config.vip_tiers)
    if tier is None:
        smallest = min(t.cost for t in config.vip_tiers)
        return PlanStep(
            "vip", VIP, VIP_TITLE, f"Need at least {smallest:,} points to buy a fixed VIP block.", BLOCKED, 0
        )

    return PlanStep("vip", VIP, VIP_TITLE, f"Buy {tier.weeks} weeks of VIP.", READY, tier.cost)


def plan_upload(remaining: int, config: PlannerConfig) -> PlanStep:
    """Upload slot: floor the leftover to whole exchange units"""
    unit = config.upload_unit
    if remaining < unit:
        return PlanStep(
            "upload",
            UPLOAD,
            UPLOAD_TITLE,
            f"Leftover is below the minimum {unit:,}-point exchange.",
            NOT_NEEDED if remaining <= 0 else BLOCKED,
            0,
        )

    cost = (remaining // unit) * unit
    return PlanStep(
        "upload", UPLOAD, UPLOAD_TITLE, "Exchange remaining points into upload credit blocks.", READY, cost
    )


def build_spending_plan(snapshot: Snapshot, config: PlannerConfig = PlannerConfig()) -> Tuple[PlanStep, PlanStep, PlanStep]:
    """
    Main entry point: map a snapshot to the donate -> vip -> upload plan.

    Pure and deterministic: no I/O, no clock, no hidden state. Each slot only
    sees what the previous ready slots left over.
    """
    overflow = calculate_overflow(snapshot)

    donation = plan_donation(snapshot, overflow)
    remaining_after_donation = overflow - donation.estimated_cost if donation.status == READY else overflow

    vip = plan_vip(snapshot, overflow, remaining_after_donation, config)
    remaining_after_vip = (
        remaining_after_donation - vip.estimated_cost if vip.status == READY else remaining_after_donation
    )

    upload = plan_upload(remaining_after_vip, config)

    return donation, vip, upload
