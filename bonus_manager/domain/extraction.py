"""State extraction - turns noisy page text into ranked bonus facts"""

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from bonus_manager.domain.exceptions import ExtractionError
from bonus_manager.domain.models import Candidate, DonationRecord, Extraction, Snapshot
from bonus_manager.utils.text import contains_any, normalize_whitespace, normalized_lines, number_from_text

# Digit groups with optional thousands separators: 12,345 / 12.345 / 12 345 / 12345
_NUMBER = r"(\d{1,3}(?:[,. ]\d{3})+|\d+)"
_BONUS_WORDS = r"(?:bonus(?:\s+points?)?|seedbonus|karma)"

BONUS_PATTERNS = (
    re.compile(_BONUS_WORDS + r"\D{0,30}?" + _NUMBER, re.IGNORECASE),
    re.compile(_NUMBER + r"\D{0,30}?" + _BONUS_WORDS, re.IGNORECASE),
    re.compile(
        r"you\s+(?:currently\s+)?have\D{0,20}?" + _NUMBER + r"\D{0,20}?(?:points?|bonus|seedbonus|karma)",
        re.IGNORECASE,
    ),
)

# Additive line weights; negative entries mark known false-positive contexts
BONUS_LINE_WEIGHTS: Tuple[Tuple[str, int], ...] = (
    ("current bonus points", 6),
    ("bonus points", 4),
    ("seedbonus", 3),
    ("you have", 2),
    ("karma", 1),
    ("cost", -3),
    ("price", -3),
    ("per gb", -3),
    ("exchange rate", -3),
    ("up to", -3),
    ("faq", -4),
    ("guide", -4),
    ("how do i", -4),
)

STRUCTURED_RANK = 100
EVIDENCE_SIZE = 5

VIP_WEEKS_PATTERNS = (
    re.compile(r"vip\b[^0-9]{0,40}?(?:expires|ends|remaining|left)\D{0,20}?(\d+(?:\.\d+)?)\s*weeks?", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*weeks?\s+(?:of\s+)?vip\s+(?:time\s+)?(?:remaining|left)", re.IGNORECASE),
)

DONATION_CONTEXT = ("millionaire",)
ALREADY_DONATED_PHRASES = ("already donated", "already contributed", "you have donated")
MAX_DONATION_PATTERNS = (
    re.compile(r"(?:donate|contribute)\s+up\s+to\D{0,10}?" + _NUMBER + r"\s*(?:bonus\s+)?points?", re.IGNORECASE),
    re.compile(r"max(?:imum)?\s+(?:daily\s+)?donation\D{0,20}?" + _NUMBER, re.IGNORECASE),
)

HISTORY_DATE_COLUMNS = ("date", "time", "when")
HISTORY_AMOUNT_COLUMNS = ("amount", "points", "donated", "bonus")


def rank_line(line: str) -> int:
    """Sum the keyword weights that hit a line"""
    lowered = line.lower()
    return sum(weight for phrase, weight in BONUS_LINE_WEIGHTS if phrase in lowered)


def parse_bonus_candidates(text: str, ceiling: int) -> List[Candidate]:
    """
    Apply every bonus pattern to every normalized line.

    Each match becomes a Candidate ranked by its line; numbers above the
    ceiling are dropped and repeated (value, line) pairs collapse into one.
    """
    candidates: List[Candidate] = []
    seen = set()

    for line in normalized_lines(text):
        for pattern in BONUS_PATTERNS:
            match = pattern.search(line)
            if not match:
                continue
            value = number_from_text(match.group(1))
            if value is None or value > ceiling or (value, line) in seen:
                continue
            seen.add((value, line))
            candidates.append(Candidate(value=value, source_line=line, rank=rank_line(line)))

    return candidates


def sort_candidates(candidates: Sequence[Candidate]) -> List[Candidate]:
    """Highest rank first; equal ranks prefer the larger value"""
    return sorted(candidates, key=lambda c: (-c.rank, -c.value))


def extract_bonus_points(
    text: str,
    *,
    structured_text: Optional[str] = None,
    ceiling: int = 500000,
) -> Extraction:
    """
    Extract the current bonus balance.

    A labeled element's own text (structured_text) outranks every pattern
    candidate when it parses; the noisy page text is ranked otherwise.

    Returns:
        Extraction with value None and no evidence when nothing survives
    """
    ranked = sort_candidates(parse_bonus_candidates(text, ceiling))

    structured_value = number_from_text(structured_text)
    if structured_value is not None and structured_value <= ceiling:
        fast_path = Candidate(
            value=structured_value,
            source_line=normalize_whitespace(structured_text),
            rank=STRUCTURED_RANK,
        )
        ranked.insert(0, fast_path)

    if not ranked:
        return Extraction(value=None, evidence=())

    return Extraction(value=ranked[0].value, evidence=tuple(ranked[:EVIDENCE_SIZE]))


def read_vip_weeks(text: str) -> float:
    """Weeks of VIP left, 0.0 when neither phrasing is present"""
    for line in normalized_lines(text):
        for pattern in VIP_WEEKS_PATTERNS:
            match = pattern.search(line)
            if match:
                return float(match.group(1))
    return 0.0


def read_donation_status(text: str, *, default_max: int) -> Tuple[bool, int]:
    """
    Read donation eligibility for today.

    Returns:
        (donated_today, max_daily_donation) where the maximum is the
        advertised one if the page states it, else default_max
    """
    donated_today = contains_any(text, DONATION_CONTEXT) and contains_any(text, ALREADY_DONATED_PHRASES)

    max_daily = default_max
    for line in normalized_lines(text):
        match = next((m for m in (p.search(line) for p in MAX_DONATION_PATTERNS) if m), None)
        if match:
            max_daily = number_from_text(match.group(1)) or default_max
            break

    return donated_today, max_daily


def _parse_history_date(cell: str) -> Optional[datetime]:
    value = normalize_whitespace(cell).replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _history_columns(cells: List[str]) -> Optional[Dict[str, int]]:
    lowered = [c.lower() for c in cells]
    date_col = next((i for i, c in enumerate(lowered) if contains_any(c, HISTORY_DATE_COLUMNS)), None)
    amount_col = next((i for i, c in enumerate(lowered) if contains_any(c, HISTORY_AMOUNT_COLUMNS)), None)
    if date_col is None or amount_col is None or date_col == amount_col:
        return None
    return {"date": date_col, "amount": amount_col}


def read_donation_history(text: str) -> Tuple[DonationRecord, ...]:
    """
    Scan the first table whose header names a date and an amount column.

    Rows are tab-separated cells (how rendered tables come out of innerText).
    Collection stops at the first row that is not a dated, numeric entry.
    """
    records: List[DonationRecord] = []
    columns: Optional[Dict[str, int]] = None

    for raw_line in (text or "").splitlines():
        cells = [c.strip() for c in raw_line.split("\t")]
        if columns is None:
            if len(cells) >= 2:
                columns = _history_columns(cells)
            continue

        if len(cells) <= max(columns.values()):
            break
        when = _parse_history_date(cells[columns["date"]])
        amount = number_from_text(cells[columns["amount"]])
        if when is None or amount is None:
            break
        records.append(DonationRecord(date=when, amount=amount))

    return tuple(records)


def build_snapshot(
    text: str,
    *,
    structured_text: Optional[str],
    threshold: int,
    target: int,
    max_cap: int,
    default_max_donation: int,
    ceiling: int,
    checked_at: Optional[datetime] = None,
) -> Tuple[Snapshot, Extraction]:
    """
    Main entry point: read every fact needed for planning from one page.

    Raises:
        ExtractionError: When no bonus value can be parsed
    """
    extraction = extract_bonus_points(text, structured_text=structured_text, ceiling=ceiling)
    if extraction.value is None:
        raise ExtractionError("Could not parse current bonus points from the page")

    donated_today, max_daily = read_donation_status(text, default_max=default_max_donation)

    snapshot = Snapshot(
        bonus_points=extraction.value,
        threshold=threshold,
        target=target,
        max_cap=max_cap,
        donated_today=donated_today,
        max_daily_donation=max_daily,
        vip_weeks_remaining=read_vip_weeks(text),
        checked_at=checked_at or datetime.now(timezone.utc),
        donation_history=read_donation_history(text),
    )
    return snapshot, extraction
