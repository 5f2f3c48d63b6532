"""Pydantic schemas for API responses and CLI JSON output"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from bonus_manager.domain.models import ActionResult, Candidate, PlanStep, RunSummary, Snapshot


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts either spelling on input"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DonationRecordSchema(CamelModel):
    date: datetime
    amount: int


class CandidateSchema(CamelModel):
    """Ranked numeric candidate backing an extracted value"""

    value: int
    source_line: str
    rank: int


class SnapshotResponse(CamelModel):
    """Response for GET /v1/snapshot"""

    bonus_points: int
    threshold: int
    target: int
    max_cap: int
    donated_today: bool
    max_daily_donation: int
    vip_weeks_remaining: float
    checked_at: datetime
    donation_history: List[DonationRecordSchema] = []
    evidence: List[CandidateSchema] = []
    fetched_at: Optional[datetime] = None


class PlanStepSchema(CamelModel):
    id: str
    kind: str
    title: str
    detail: str
    status: str
    estimated_cost: int


class PlanResponse(CamelModel):
    """Response for GET /v1/plan"""

    bonus_points: int
    target: int
    steps: List[PlanStepSchema]
    fetched_at: Optional[datetime] = None


class AttemptSchema(CamelModel):
    candidate: str
    outcome: str
    message: str = ""


class ActionResultSchema(CamelModel):
    name: str
    kind: str
    status: str
    cost: int = 0
    reason: Optional[str] = None
    attempts: List[AttemptSchema] = []
    detail: Dict[str, Any] = {}


class CheckpointSchema(CamelModel):
    step_id: str
    bonus_points: int


class RunSummarySchema(CamelModel):
    """Report printed by the CLI after a full run"""

    mode: str
    threshold: int
    target: int
    cap: int
    should_spend: bool
    starting_bonus: Optional[int]
    starting_evidence: List[CandidateSchema]
    actions: List[ActionResultSchema]
    checkpoints: List[CheckpointSchema]
    ending_bonus: Optional[int]
    ending_evidence: List[CandidateSchema]
    notes: List[str]
    debug: Dict[str, str]
    started_at: datetime
    finished_at: datetime


def candidate_schema(candidate: Candidate) -> CandidateSchema:
    return CandidateSchema(value=candidate.value, source_line=candidate.source_line, rank=candidate.rank)


def snapshot_response(
    snapshot: Snapshot, evidence: tuple[Candidate, ...] = (), fetched_at: Optional[datetime] = None
) -> SnapshotResponse:
    return SnapshotResponse(
        bonus_points=snapshot.bonus_points,
        threshold=snapshot.threshold,
        target=snapshot.target,
        max_cap=snapshot.max_cap,
        donated_today=snapshot.donated_today,
        max_daily_donation=snapshot.max_daily_donation,
        vip_weeks_remaining=snapshot.vip_weeks_remaining,
        checked_at=snapshot.checked_at,
        donation_history=[DonationRecordSchema(date=r.date, amount=r.amount) for r in snapshot.donation_history],
        evidence=[candidate_schema(c) for c in evidence],
        fetched_at=fetched_at,
    )


def plan_step_schema(step: PlanStep) -> PlanStepSchema:
    return PlanStepSchema(
        id=step.id,
        kind=step.kind,
        title=step.title,
        detail=step.detail,
        status=step.status,
        estimated_cost=step.estimated_cost,
    )


def action_result_schema(result: ActionResult) -> ActionResultSchema:
    return ActionResultSchema(
        name=result.name,
        kind=result.kind,
        status=result.status,
        cost=result.cost,
        reason=result.reason,
        attempts=[AttemptSchema(candidate=a.candidate, outcome=a.outcome, message=a.message) for a in result.attempts],
        detail=result.detail,
    )


def run_summary_schema(summary: RunSummary) -> RunSummarySchema:
    return RunSummarySchema(
        mode=summary.mode,
        threshold=summary.threshold,
        target=summary.target,
        cap=summary.cap,
        should_spend=summary.should_spend,
        starting_bonus=summary.starting_bonus,
        starting_evidence=[candidate_schema(c) for c in summary.starting_evidence],
        actions=[action_result_schema(a) for a in summary.actions],
        checkpoints=[CheckpointSchema(step_id=c.step_id, bonus_points=c.bonus_points) for c in summary.checkpoints],
        ending_bonus=summary.ending_bonus,
        ending_evidence=[candidate_schema(c) for c in summary.ending_evidence],
        notes=list(summary.notes),
        debug=summary.debug,
        started_at=summary.started_at,
        finished_at=summary.finished_at,
    )
