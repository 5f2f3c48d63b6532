"""Unit tests for the run summary builder"""

from datetime import datetime, timedelta, timezone

import pytest

from bonus_manager.domain.models import APPLIED, SKIPPED, ActionResult, Candidate, Extraction
from bonus_manager.domain.summary import APPLY_MODE, RunSummaryBuilder

START = datetime(2026, 10, 17, 6, 0, tzinfo=timezone.utc)


def ticking_clock():
    ticks = iter(START + timedelta(seconds=n) for n in range(100))
    return lambda: next(ticks)


def test_builder_collects_a_run():
    builder = RunSummaryBuilder(APPLY_MODE, 98000, 90000, 99999, clock=ticking_clock())
    builder.start(Extraction(value=99000, evidence=(Candidate(99000, "Bonus Points: 99,000", 4),)), True)
    builder.add_result(ActionResult("donate_millionaires_club", "donate", APPLIED, cost=2000))
    builder.record_checkpoint("donation", 97000)
    builder.add_result(ActionResult("extend_vip", "vip", SKIPPED, reason="VIP cap"))
    builder.note("Debug capture failed")

    summary = builder.finish(Extraction(value=97000))

    assert summary.mode == "apply"
    assert summary.should_spend is True
    assert summary.starting_bonus == 99000
    assert summary.starting_evidence[0].source_line == "Bonus Points: 99,000"
    assert [a.status for a in summary.actions] == [APPLIED, SKIPPED]
    assert summary.checkpoints[0].bonus_points == 97000
    assert summary.ending_bonus == 97000
    assert summary.ending_evidence == ()
    assert summary.notes == ("Debug capture failed",)
    assert summary.started_at == START
    assert summary.finished_at > summary.started_at


def test_finish_without_ending_read():
    builder = RunSummaryBuilder("dry-run", 98000, 90000, 99999)
    builder.start(Extraction(value=50000), False)

    summary = builder.finish()

    assert summary.ending_bonus is None
    assert summary.should_spend is False


def test_builder_is_frozen_after_finish():
    builder = RunSummaryBuilder(APPLY_MODE, 98000, 90000, 99999)
    builder.finish()

    with pytest.raises(RuntimeError):
        builder.note("late")
    with pytest.raises(RuntimeError):
        builder.add_result(ActionResult("extend_vip", "vip", SKIPPED))
    with pytest.raises(RuntimeError):
        builder.finish()


def test_actions_view_is_a_copy():
    builder = RunSummaryBuilder(APPLY_MODE, 98000, 90000, 99999)
    builder.add_result(ActionResult("extend_vip", "vip", SKIPPED))

    builder.actions.clear()

    assert len(builder.actions) == 1
