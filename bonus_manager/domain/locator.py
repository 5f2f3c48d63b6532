"""Action locator - keyword scoring of interactive containers, fields and options"""

from typing import Optional, Sequence, Tuple

from bonus_manager.domain.models import Container, FieldOption, FormField
from bonus_manager.utils.text import number_from_text

SECTION_WEIGHT = 10
ACTION_WEIGHT = 2
HAS_CONTROLS_BONUS = 1

INPUT_FIELD_WEIGHTS: Tuple[Tuple[str, int], ...] = (
    ("point", 5),
    ("bonus", 4),
    ("amount", 3),
    ("vip", 2),
    ("week", 1),
)

SELECT_FIELD_WEIGHTS: Tuple[Tuple[str, int], ...] = (
    ("vip", 4),
    ("week", 3),
    ("point", 2),
    ("bonus", 2),
)

TEXT_INPUT_TYPES = ("", "text", "number")


def score_container(container: Container, section_keywords: Sequence[str], action_keywords: Sequence[str]) -> int:
    """
    Score how well a container serves a benefit and offers the action.

    -1 disqualifies (no section keyword hit while section keywords exist);
    otherwise 10 per section hit, 2 per action hit, +1 when it has controls.
    """
    text = f"{container.text} {' '.join(container.controls)}".lower()

    section_hits = sum(1 for keyword in section_keywords if keyword in text)
    if section_keywords and section_hits == 0:
        return -1

    action_hits = sum(1 for keyword in action_keywords if keyword in text)
    return (
        section_hits * SECTION_WEIGHT
        + action_hits * ACTION_WEIGHT
        + (HAS_CONTROLS_BONUS if container.controls else 0)
    )


def pick_best_container(
    containers: Sequence[Container],
    section_keywords: Sequence[str],
    action_keywords: Sequence[str],
) -> Tuple[Optional[Container], int]:
    """Highest scoring container, first one wins ties; (None, -1) when nothing qualifies"""
    best: Optional[Container] = None
    best_score = -1

    for container in containers:
        score = score_container(container, section_keywords, action_keywords)
        if score > best_score:
            best = container
            best_score = score

    return (best, best_score) if best_score >= 0 else (None, -1)


def _weighted(descriptor: str, weights: Sequence[Tuple[str, int]]) -> int:
    return sum(weight for keyword, weight in weights if keyword in descriptor)


def pick_input_field(fields: Sequence[FormField]) -> Optional[FormField]:
    """Best text/number input for an amount"""
    inputs = [f for f in fields if f.tag == "input" and f.type.lower() in TEXT_INPUT_TYPES]
    if not inputs:
        return None
    # max() keeps the first of equal scores
    return max(inputs, key=lambda f: _weighted(f.descriptor, INPUT_FIELD_WEIGHTS))


def pick_select_field(fields: Sequence[FormField]) -> Optional[FormField]:
    """Best select for an amount or a VIP duration"""
    selects = [f for f in fields if f.tag == "select"]
    if not selects:
        return None
    return max(selects, key=lambda f: _weighted(f.descriptor, SELECT_FIELD_WEIGHTS))


def pick_option(options: Sequence[FieldOption], amount: int) -> Optional[FieldOption]:
    """
    Largest enabled numeric option not above amount.

    Falls back to the smallest numeric option when every option is above
    amount; None only when no enabled option carries a number.
    """
    numeric = []
    for option in options:
        if option.disabled:
            continue
        n = number_from_text(option.text)
        if n is None:
            n = number_from_text(option.value)
        if n is not None:
            numeric.append((n, option))

    if not numeric:
        return None

    affordable = [pair for pair in numeric if pair[0] <= amount]
    if affordable:
        return max(affordable, key=lambda pair: pair[0])[1]
    return min(numeric, key=lambda pair: pair[0])[1]


def choose_control(controls: Sequence[str], keywords: Sequence[str], *, fallback_first: bool = True) -> Optional[str]:
    """First control whose label mentions a keyword, optionally the first control otherwise"""
    for label in controls:
        lowered = label.lower()
        if any(keyword in lowered for keyword in keywords):
            return label
    if fallback_first and controls:
        return controls[0]
    return None
