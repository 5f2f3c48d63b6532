"""Domain models - pure Python dataclasses representing the bonus economy"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

# Plan step kinds, in execution order
DONATE = "donate"
VIP = "vip"
UPLOAD = "upload"
STEP_ORDER = (DONATE, VIP, UPLOAD)

# Plan step statuses
READY = "ready"
BLOCKED = "blocked"
NOT_NEEDED = "not-needed"

# Action result statuses
APPLIED = "applied"
PLANNED = "planned"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class DonationRecord:
    """One row of the donation history table"""

    date: datetime
    amount: int


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time read of the account's bonus state"""

    bonus_points: int
    threshold: int
    target: int
    max_cap: int
    donated_today: bool
    max_daily_donation: int
    vip_weeks_remaining: float
    checked_at: datetime
    donation_history: Tuple[DonationRecord, ...] = ()


@dataclass(frozen=True)
class Candidate:
    """One parsed numeric fact with the line it came from"""

    value: int
    source_line: str
    rank: int


@dataclass(frozen=True)
class Extraction:
    """Extracted value plus the top-ranked candidates that support it"""

    value: Optional[int]
    evidence: Tuple[Candidate, ...] = ()


@dataclass(frozen=True)
class PlanStep:
    """One slot of the donate -> vip -> upload spending plan"""

    id: str
    kind: str  # donate | vip | upload
    title: str
    detail: str
    status: str  # ready | blocked | not-needed
    estimated_cost: int


@dataclass(frozen=True)
class FieldOption:
    """Option of a select field"""

    value: str
    text: str
    disabled: bool = False


@dataclass(frozen=True)
class FormField:
    """Input, select or textarea inside an interactive container"""

    tag: str
    type: str = ""
    name: str = ""
    id: str = ""
    placeholder: str = ""
    options: Tuple[FieldOption, ...] = ()

    @property
    def key(self) -> str:
        """Identifier the surface uses to address this field"""
        return self.name or self.id

    @property
    def descriptor(self) -> str:
        return f"{self.name} {self.id} {self.placeholder}".lower()


@dataclass(frozen=True)
class Container:
    """Interactive container (a form) as enumerated from the page"""

    index: int
    text: str
    controls: Tuple[str, ...] = ()
    fields: Tuple[FormField, ...] = ()
    action: str = ""
    method: str = ""


@dataclass(frozen=True)
class Attempt:
    """Outcome of trying a single spend candidate"""

    candidate: str
    outcome: str  # accepted | rejected
    message: str = ""


@dataclass
class ActionResult:
    """Outcome of executing one plan step against the remote surface"""

    name: str
    kind: str
    status: str  # applied | planned | skipped | failed
    cost: int = 0
    reason: Optional[str] = None
    attempts: List[Attempt] = field(default_factory=list)
    detail: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Checkpoint:
    """Bonus value re-read after an applied mutating step"""

    step_id: str
    bonus_points: int


@dataclass(frozen=True)
class RunSummary:
    """Full report for one invocation"""

    mode: str  # apply | dry-run
    threshold: int
    target: int
    cap: int
    should_spend: bool
    starting_bonus: Optional[int]
    starting_evidence: Tuple[Candidate, ...]
    actions: Tuple[ActionResult, ...]
    checkpoints: Tuple[Checkpoint, ...]
    ending_bonus: Optional[int]
    ending_evidence: Tuple[Candidate, ...]
    notes: Tuple[str, ...]
    debug: Dict[str, str]
    started_at: datetime
    finished_at: datetime
