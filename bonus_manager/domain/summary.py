"""Run summary builder - accumulates step outcomes into one report"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from bonus_manager.domain.models import ActionResult, Candidate, Checkpoint, Extraction, RunSummary

APPLY_MODE = "apply"
DRY_RUN_MODE = "dry-run"


class RunSummaryBuilder:
    """Collects everything one run reports; finish() freezes it"""

    def __init__(
        self,
        mode: str,
        threshold: int,
        target: int,
        cap: int,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.mode = mode
        self.threshold = threshold
        self.target = target
        self.cap = cap
        self._clock = clock
        self._started_at = clock()
        self._should_spend = False
        self._starting: Optional[Extraction] = None
        self._actions: List[ActionResult] = []
        self._checkpoints: List[Checkpoint] = []
        self._notes: List[str] = []
        self._debug: Dict[str, str] = {}
        self._summary: Optional[RunSummary] = None

    def _ensure_open(self) -> None:
        if self._summary is not None:
            raise RuntimeError("Run summary already finished")

    def start(self, extraction: Extraction, should_spend: bool) -> None:
        self._ensure_open()
        self._starting = extraction
        self._should_spend = should_spend

    def add_result(self, result: ActionResult) -> None:
        self._ensure_open()
        self._actions.append(result)

    def record_checkpoint(self, step_id: str, bonus_points: int) -> None:
        self._ensure_open()
        self._checkpoints.append(Checkpoint(step_id=step_id, bonus_points=bonus_points))

    def note(self, message: str) -> None:
        self._ensure_open()
        self._notes.append(message)

    def attach_debug(self, artifacts: Dict[str, str]) -> None:
        self._ensure_open()
        self._debug.update(artifacts)

    @property
    def actions(self) -> List[ActionResult]:
        return list(self._actions)

    def finish(self, ending: Optional[Extraction] = None) -> RunSummary:
        """Freeze the report; the builder rejects changes afterwards"""
        self._ensure_open()
        starting = self._starting or Extraction(value=None)
        ending_evidence: tuple[Candidate, ...] = ending.evidence if ending else ()

        self._summary = RunSummary(
            mode=self.mode,
            threshold=self.threshold,
            target=self.target,
            cap=self.cap,
            should_spend=self._should_spend,
            starting_bonus=starting.value,
            starting_evidence=starting.evidence,
            actions=tuple(self._actions),
            checkpoints=tuple(self._checkpoints),
            ending_bonus=ending.value if ending else None,
            ending_evidence=ending_evidence,
            notes=tuple(self._notes),
            debug=dict(self._debug),
            started_at=self._started_at,
            finished_at=self._clock(),
        )
        return self._summary
