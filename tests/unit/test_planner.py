"""Unit tests for the spend planner"""

import pytest

from bonus_manager.domain.models import BLOCKED, NOT_NEEDED, READY
from bonus_manager.domain.planner import (
    PlannerConfig,
    VipTier,
    affordable_vip_tier,
    build_spending_plan,
    calculate_overflow,
    plan_upload,
)
from conftest import make_snapshot


def test_scenario_overflow_spent_across_all_three_steps():
    """99000 with target 90000: donate 2000, 4 weeks VIP, upload the rest"""
    donation, vip, upload = build_spending_plan(make_snapshot())

    assert (donation.status, donation.estimated_cost) == (READY, 2000)
    assert (vip.status, vip.estimated_cost) == (READY, 5000)
    assert (upload.status, upload.estimated_cost) == (READY, 2000)
    assert [s.id for s in (donation, vip, upload)] == ["donation", "vip", "upload"]


def test_scenario_below_target_needs_nothing():
    steps = build_spending_plan(make_snapshot(bonus_points=38758))

    assert [(s.status, s.estimated_cost) for s in steps] == [(NOT_NEEDED, 0)] * 3


def test_scenario_donated_today_leaves_full_overflow_for_vip_and_upload():
    donation, vip, upload = build_spending_plan(make_snapshot(donated_today=True))

    assert (donation.status, donation.estimated_cost) == (BLOCKED, 0)
    # 9000 overflow: 8 week tier is 10000, so 4 weeks for 5000 and 4000 left
    assert (vip.status, vip.estimated_cost) == (READY, 5000)
    assert (upload.status, upload.estimated_cost) == (READY, 4000)


def test_build_spending_plan_is_pure():
    snapshot = make_snapshot(bonus_points=123456)

    assert build_spending_plan(snapshot) == build_spending_plan(snapshot)


@pytest.mark.parametrize("bonus, expected", [(90000, 0), (89999, 0), (90001, 1), (99999, 9999)])
def test_calculate_overflow_never_negative(bonus, expected):
    assert calculate_overflow(make_snapshot(bonus_points=bonus)) == expected


def test_donation_capped_at_daily_maximum():
    donation, _, _ = build_spending_plan(make_snapshot(bonus_points=120000, max_daily_donation=2500))

    assert donation.estimated_cost == 2500
    assert "2,500" in donation.detail


def test_donation_limited_by_small_overflow():
    donation, vip, upload = build_spending_plan(make_snapshot(bonus_points=91200))

    assert (donation.status, donation.estimated_cost) == (READY, 1200)
    assert vip.status == NOT_NEEDED
    assert upload.status == NOT_NEEDED


@pytest.mark.parametrize(
    "remaining, weeks",
    [(4999, None), (5000, 4), (9999, 4), (10000, 8), (14999, 8), (15000, 12), (60000, 12)],
)
def test_affordable_vip_tier_bands(remaining, weeks):
    tier = affordable_vip_tier(remaining)

    assert (tier.weeks if tier else None) == weeks


def test_vip_blocked_at_week_cap():
    _, vip, upload = build_spending_plan(make_snapshot(vip_weeks_remaining=12.8))

    assert (vip.status, vip.estimated_cost) == (BLOCKED, 0)
    # VIP spends nothing, so the whole 7000 after donation goes to upload
    assert upload.estimated_cost == 7000


def test_vip_blocked_below_smallest_tier():
    _, vip, upload = build_spending_plan(make_snapshot(bonus_points=95000))

    assert vip.status == BLOCKED
    assert "5,000" in vip.detail
    assert (upload.status, upload.estimated_cost) == (READY, 3000)


def test_custom_tiers_and_cap():
    config = PlannerConfig(vip_week_cap=20, vip_tiers=(VipTier(weeks=2, cost=1000),))

    _, vip, upload = build_spending_plan(make_snapshot(vip_weeks_remaining=15), config)

    assert (vip.status, vip.estimated_cost) == (READY, 1000)
    assert upload.estimated_cost == 6000


@pytest.mark.parametrize("remaining, cost", [(500, 500), (999, 500), (1000, 1000), (7499, 7000)])
def test_upload_floors_to_whole_units(remaining, cost):
    step = plan_upload(remaining, PlannerConfig())

    assert step.status == READY
    assert step.estimated_cost == cost
    assert step.estimated_cost % 500 == 0
    assert step.estimated_cost <= remaining


def test_upload_below_unit():
    assert plan_upload(0, PlannerConfig()).status == NOT_NEEDED
    assert plan_upload(499, PlannerConfig()).status == BLOCKED
    assert plan_upload(499, PlannerConfig()).estimated_cost == 0


def test_zero_overflow_takes_precedence_over_blocked_conditions():
    """Already donated and at the VIP cap, but nothing to spend"""
    steps = build_spending_plan(make_snapshot(bonus_points=90000, donated_today=True, vip_weeks_remaining=13))

    assert [s.status for s in steps] == [NOT_NEEDED] * 3


def test_vip_cap_blocks_even_when_donation_used_the_overflow():
    """1500 overflow all goes to the donation; VIP is still reported as capped"""
    donation, vip, upload = build_spending_plan(make_snapshot(bonus_points=91500, vip_weeks_remaining=13))

    assert (donation.status, donation.estimated_cost) == (READY, 1500)
    assert (vip.status, vip.estimated_cost) == (BLOCKED, 0)
    assert upload.status == NOT_NEEDED


def test_vip_not_needed_when_donation_used_the_overflow():
    _, vip, _ = build_spending_plan(make_snapshot(bonus_points=91500))

    assert vip.status == NOT_NEEDED
    assert vip.detail == "No overflow remains after donation."
