"""Text normalization utilities for scraped page content"""

import re
from typing import Iterable, List, Optional

_WHITESPACE = re.compile(r"\s+")
_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_whitespace(value: Optional[str]) -> str:
    """Collapse runs of whitespace to single spaces and strip the ends"""
    return _WHITESPACE.sub(" ", value or "").strip()


def normalized_lines(text: Optional[str]) -> List[str]:
    """Split page text into whitespace-collapsed, non-empty lines"""
    lines = (normalize_whitespace(line) for line in (text or "").splitlines())
    return [line for line in lines if line]


def number_from_text(value: Optional[str]) -> Optional[int]:
    """Parse an integer by stripping every non-digit character ("12,345 pts" -> 12345)"""
    digits = _NON_DIGITS.sub("", value or "")
    return int(digits) if digits else None


def contains_any(haystack: str, needles: Iterable[str]) -> bool:
    """Case-insensitive substring match against any needle"""
    lowered = haystack.lower()
    return any(needle.lower() in lowered for needle in needles)
