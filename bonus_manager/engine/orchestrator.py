"""Execution orchestrator - drives the spend plan against the remote surface"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from bonus_manager.config import Settings
from bonus_manager.domain.exceptions import (
    AcknowledgmentTimeoutError,
    ActionSurfaceNotFoundError,
    ConfirmationError,
    DomainException,
    ExtractionError,
    NavigationError,
    SessionUnauthenticatedError,
    StepError,
    SubmissionError,
)
from bonus_manager.domain.locator import (
    choose_control,
    pick_best_container,
    pick_input_field,
    pick_option,
    pick_select_field,
)
from bonus_manager.domain.models import (
    APPLIED,
    DONATE,
    FAILED,
    PLANNED,
    READY,
    SKIPPED,
    STEP_ORDER,
    UPLOAD,
    VIP,
    ActionResult,
    Attempt,
    Container,
    PlanStep,
    RunSummary,
)
from bonus_manager.domain.planner import PlannerConfig, build_spending_plan
from bonus_manager.domain.summary import APPLY_MODE, DRY_RUN_MODE, RunSummaryBuilder
from bonus_manager.engine.session import AccountSession, SnapshotRead
from bonus_manager.infrastructure.observability.logging import log_action
from bonus_manager.infrastructure.observability.metrics import record_action
from bonus_manager.infrastructure.surface.base import Prompt, url_contains
from bonus_manager.utils.text import contains_any

logger = logging.getLogger(__name__)

AFFIRMATIVE_KEYWORDS = ("yes", "ok", "confirm", "accept", "buy", "donate", "continue")
DISMISS_KEYWORDS = ("ok", "close", "done")
SUCCESS_KEYWORDS = ("success", "thank", "purchased", "donated", "added")


@dataclass(frozen=True)
class StepLayout:
    """How one plan step kind is found and submitted on the page"""

    name: str
    section_keywords: Tuple[str, ...]  # which benefit a container serves
    action_keywords: Tuple[str, ...]  # container scoring
    submit_keywords: Tuple[str, ...]  # generic submit control once an amount is set


STEP_LAYOUTS: Dict[str, StepLayout] = {
    DONATE: StepLayout(
        name="donate_millionaires_club",
        section_keywords=("millionaire", "vault", "pot"),
        action_keywords=("donate", "contribute"),
        submit_keywords=("donate", "contribute"),
    ),
    VIP: StepLayout(
        name="extend_vip",
        section_keywords=("vip",),
        action_keywords=("vip", "extend", "buy", "week"),
        submit_keywords=("buy", "extend"),
    ),
    UPLOAD: StepLayout(
        name="buy_upload_credit",
        section_keywords=("upload", "credit", "gb"),
        action_keywords=("max", "upload", "credit", "exchange", "buy"),
        submit_keywords=("exchange", "buy", "upload"),
    ),
}


@dataclass(frozen=True)
class SpendCandidate:
    """One way of performing a step, tried in list order"""

    label: str
    cost: int
    field_amount: Optional[int]  # value for the amount field, None to leave fields alone
    control_keywords: Tuple[str, ...]


@dataclass(frozen=True)
class AttemptOutcome:
    control: str
    prompt: str
    message: str
    amount_set: Optional[Dict[str, Any]]


def build_candidates(step: PlanStep, config: PlannerConfig) -> List[SpendCandidate]:
    """
    Ordered spend candidates for a ready step.

    - donate: the planned amount
    - vip: fixed tiers from the planned one downward, then "max me out"
    - upload: the planned amount, then a single minimum block
    """
    if step.kind == DONATE:
        return [SpendCandidate(f"donate {step.estimated_cost}", step.estimated_cost, step.estimated_cost, ("donate", "contribute"))]

    if step.kind == VIP:
        tiers = [
            SpendCandidate(f"{tier.weeks} weeks", tier.cost, tier.weeks, (f"{tier.weeks} week",))
            for tier in config.vip_tiers
            if tier.cost <= step.estimated_cost
        ]
        return tiers + [SpendCandidate("max me out", step.estimated_cost, None, ("max me out",))]

    candidates = [SpendCandidate(f"{step.estimated_cost} points", step.estimated_cost, step.estimated_cost, ("exchange",))]
    if step.estimated_cost > config.upload_unit:
        candidates.append(
            SpendCandidate(f"{config.upload_unit} points", config.upload_unit, config.upload_unit, ("exchange",))
        )
    return candidates


class SpendOrchestrator:
    """
    Runs one pass over the donate -> vip -> upload plan.

    Each step: locate container, set amount, click, confirm prompt, await the
    acknowledgment, then re-read the overview. The plan is rebuilt from the
    latest verified snapshot before every step.
    """

    def __init__(self, session: AccountSession, settings: Settings):
        self.session = session
        self.surface = session.surface
        self.settings = settings
        self.planner_config = settings.planner_config()
        self.run_id = uuid.uuid4().hex
        self._ack_patterns = {
            DONATE: settings.donate_ack_pattern,
            VIP: settings.vip_ack_pattern,
            UPLOAD: settings.upload_ack_pattern,
        }

    @property
    def mode(self) -> str:
        return APPLY_MODE if self.settings.apply else DRY_RUN_MODE

    async def run(self, initial: SnapshotRead) -> RunSummary:
        builder = RunSummaryBuilder(
            self.mode, self.settings.bonus_threshold, self.settings.bonus_target, self.settings.bonus_cap
        )
        starting = initial.snapshot.bonus_points
        should_spend = starting >= self.settings.bonus_threshold
        builder.start(initial.extraction, should_spend)
        if not should_spend:
            builder.note(
                f"Bonus points ({starting}) are below threshold ({self.settings.bonus_threshold}); no spending planned."
            )

        current = initial.snapshot
        for slot in range(len(STEP_ORDER)):
            step = build_spending_plan(current, self.planner_config)[slot]
            start_time = time.time()
            result = await self.execute_step(step, should_spend)
            builder.add_result(result)
            record_action(result)
            log_action(self.run_id, result, (time.time() - start_time) * 1000)

            if result.status == APPLIED:
                fresh = await self._reverify(builder, step.id)
                if fresh is not None:
                    current = fresh.snapshot
                    builder.record_checkpoint(step.id, fresh.snapshot.bonus_points)

        ending = await self._reverify(builder, "final")
        if self.settings.capture_debug:
            await self._capture(builder)
        return builder.finish(ending.extraction if ending else None)

    async def execute_step(self, step: PlanStep, should_spend: bool = True) -> ActionResult:
        """Run one plan step; per-step errors end up in the result, never raised"""
        layout = STEP_LAYOUTS[step.kind]

        if step.status != READY:
            return ActionResult(layout.name, step.kind, SKIPPED, reason=step.detail, detail={"planStatus": step.status})
        if not should_spend:
            return ActionResult(
                layout.name, step.kind, SKIPPED, reason="Starting balance is below the spend threshold.",
                detail={"planStatus": step.status, "estimatedCost": step.estimated_cost},
            )

        try:
            containers = await self.surface.list_containers()
        except StepError as e:
            logger.warning("Form lookup failed", extra={"run_id": self.run_id, "action": layout.name, "error": str(e)})
            return ActionResult(layout.name, step.kind, FAILED, reason=f"{type(e).__name__}: {e}")
        container, score = pick_best_container(containers, layout.section_keywords, layout.action_keywords)

        if not self.settings.apply:
            return ActionResult(
                layout.name, step.kind, PLANNED, cost=step.estimated_cost, reason=step.detail,
                detail={"formIndex": container.index if container else None, "score": score},
            )

        if container is None:
            return ActionResult(
                layout.name, step.kind, SKIPPED,
                reason=f"No form found for section keywords: {', '.join(layout.section_keywords)}",
            )

        attempts: List[Attempt] = []
        for position, candidate in enumerate(build_candidates(step, self.planner_config)):
            try:
                if position > 0:
                    container = await self._relocate(layout)
                outcome = await self._attempt(step, layout, container, candidate)
            except StepError as e:
                self.surface.disarm_acknowledgment()
                logger.warning(
                    "Spend candidate rejected",
                    extra={"run_id": self.run_id, "action": layout.name, "candidate": candidate.label, "error": str(e)},
                )
                attempts.append(Attempt(candidate.label, "rejected", f"{type(e).__name__}: {e}"))
                continue

            attempts.append(Attempt(candidate.label, "accepted", outcome.message))
            return ActionResult(
                layout.name, step.kind, APPLIED, cost=candidate.cost, reason=step.detail, attempts=attempts,
                detail={
                    "formIndex": container.index,
                    "chosenButton": outcome.control,
                    "prompt": outcome.prompt,
                    "amountSet": outcome.amount_set,
                },
            )

        return ActionResult(
            layout.name, step.kind, FAILED,
            reason=attempts[-1].message if attempts else "No spend candidates for this step.",
            attempts=attempts,
            detail={"formIndex": container.index if container else None},
        )

    async def _relocate(self, layout: StepLayout) -> Container:
        container, _ = pick_best_container(
            await self.surface.list_containers(), layout.section_keywords, layout.action_keywords
        )
        if container is None:
            raise ActionSurfaceNotFoundError(f"Form for {layout.name} disappeared after a rejected attempt")
        return container

    async def _set_amount(self, container: Container, amount: int) -> Optional[Dict[str, Any]]:
        """Fill the best amount input, else pick from the best select"""
        field = pick_input_field(container.fields)
        if field is not None and field.key:
            await self.surface.set_field_value(container.index, field.key, str(amount))
            return {"type": "input", "field": field.key, "amount": amount}

        select = pick_select_field(container.fields)
        if select is not None and select.key:
            option = pick_option(select.options, amount)
            if option is not None:
                await self.surface.set_field_value(container.index, select.key, option.value)
                return {"type": "select", "field": select.key, "amount": amount, "option": option.text}

        return None

    async def _attempt(
        self, step: PlanStep, layout: StepLayout, container: Container, candidate: SpendCandidate
    ) -> AttemptOutcome:
        """
        Submit one candidate and wait for the remote side to accept it.

        Raises:
            ActionSurfaceNotFoundError: No control for this candidate
            ConfirmationError: No confirmation prompt appeared
            SubmissionError: Server rejected the submission
            AcknowledgmentTimeoutError: No acknowledgment and no success message
        """
        stale = await self.surface.clear_prompts()
        if stale:
            logger.info(
                "Cleared leftover prompts",
                extra={"run_id": self.run_id, "action": layout.name, "prompts": stale},
            )

        amount_set = None
        if candidate.field_amount is not None:
            amount_set = await self._set_amount(container, candidate.field_amount)

        control = choose_control(container.controls, candidate.control_keywords, fallback_first=False)
        if control is None and (amount_set is not None or step.kind == DONATE):
            control = choose_control(container.controls, layout.submit_keywords, fallback_first=True)
        if control is None:
            raise ActionSurfaceNotFoundError(f"No control for {candidate.label!r}")

        timeout_ms = self.settings.timeout_ms
        self.surface.arm_acknowledgment(url_contains(self._ack_patterns[step.kind]))
        await self.surface.click_control(container.index, control)

        prompt = await self.surface.wait_for_prompt(timeout_ms)
        if prompt is None:
            raise ConfirmationError(f"No confirmation prompt after clicking {control!r}")
        affirmative = choose_control(prompt.controls, AFFIRMATIVE_KEYWORDS, fallback_first=True)
        if affirmative is None:
            raise ConfirmationError(f"Confirmation prompt has no controls: {prompt.text!r}")
        await self.surface.click_prompt_control(affirmative)

        ack = await self.surface.await_acknowledgment(timeout_ms)
        if ack is not None:
            if ack.rejected:
                raise SubmissionError(f"Server rejected {candidate.label!r}: {ack.error_message}")
            message = f"Acknowledged with HTTP {ack.status}"
            try:
                await self._dismiss_result(prompt)
            except StepError as e:
                logger.warning("Result prompt not dismissed", extra={"run_id": self.run_id, "error": str(e)})
        else:
            result = await self._dismiss_result(prompt)
            if result is None or not contains_any(result.text, SUCCESS_KEYWORDS):
                raise AcknowledgmentTimeoutError(f"No acknowledgment for {candidate.label!r} within {timeout_ms}ms")
            message = result.text

        try:
            await self.surface.settle()
        except NavigationError as e:
            # Already accepted; the reverify that follows reports the page state
            logger.warning("Page did not settle after submit", extra={"run_id": self.run_id, "error": str(e)})
        return AttemptOutcome(control=control, prompt=prompt.text, message=message, amount_set=amount_set)

    async def _dismiss_result(self, confirmation: Prompt) -> Optional[Prompt]:
        """Close the result prompt that follows a confirmed submission, if one shows up"""
        result = await self.surface.wait_for_prompt(self.settings.settle_fallback_ms)
        if result is None or result.text == confirmation.text:
            return None
        dismiss = choose_control(result.controls, DISMISS_KEYWORDS, fallback_first=False)
        if dismiss is not None:
            await self.surface.click_prompt_control(dismiss)
        return result

    async def _reverify(self, builder: RunSummaryBuilder, label: str) -> Optional[SnapshotRead]:
        """Re-open the overview and re-extract; keep the last verified state on failure"""
        try:
            return await self.session.read_snapshot(reopen=True)
        except (ExtractionError, NavigationError, SessionUnauthenticatedError) as e:
            logger.warning("Reverification failed", extra={"run_id": self.run_id, "after": label, "error": str(e)})
            builder.note(f"Could not re-read bonus points after {label}: {e}")
            return None

    async def _capture(self, builder: RunSummaryBuilder) -> None:
        label = "apply-run" if self.settings.apply else "dry-run"
        try:
            builder.attach_debug(await self.session.capture(label))
        except (OSError, DomainException) as e:
            builder.note(f"Debug capture failed: {e}")
