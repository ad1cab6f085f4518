"""
Best-effort structured extraction from human-readable selection text.

Every parser returns ``None`` when nothing recognisable is found; the caller
decides between a documented default and cancelling the bet.
"""
from __future__ import annotations

import re
from typing import Optional

DEFAULT_THRESHOLD = 2.5

_NUM = r"(\d+(?:[.,]\d+)?)"
_SIGNED = r"([+\-]?\d+(?:[.,]\d+)?)"

_THRESHOLD_PATTERNS = [
    re.compile(_NUM + r"\s*\+"),
    re.compile(r"\bover\s*" + _NUM),
    re.compile(r"\bunder\s*" + _NUM),
    re.compile(_NUM + r"\s*goals?\b"),
    re.compile(_NUM),
]

_HANDICAP_PATTERNS = [
    re.compile(_SIGNED + r"\s*(?:ah|handicap)\b"),
    re.compile(r"\(\s*" + _SIGNED + r"\s*\)"),
    re.compile(r"(?:^|\s)([+\-]\d+(?:[.,]\d+)?)"),
    re.compile(r"(?:^|\s)(\d+(?:[.,]\d+)?)(?:\s|$)"),
]

_RESULT_MAP = {"1": "HOME", "h": "HOME", "home": "HOME",
               "x": "DRAW", "d": "DRAW", "draw": "DRAW", "tie": "DRAW",
               "2": "AWAY", "a": "AWAY", "away": "AWAY"}

_YES_NO_MAP = {"yes": "YES", "y": "YES", "gg": "YES",
               "no": "NO", "n": "NO", "ng": "NO"}

_HALF_MAP = {"1st": "FIRST", "first": "FIRST", "1st half": "FIRST", "first half": "FIRST", "1": "FIRST",
             "2nd": "SECOND", "second": "SECOND", "2nd half": "SECOND", "second half": "SECOND", "2": "SECOND",
             "equal": "EQUAL", "tie": "EQUAL", "draw": "EQUAL", "x": "EQUAL", "same": "EQUAL"}


def _clean(text: Optional[str]) -> str:
    if not text:
        return ""
    # unicode minus / en dash used by some feeds for negative lines
    return str(text).strip().lower().replace("−", "-").replace("–", "-")


def _to_float(raw: str) -> float:
    return float(raw.replace(",", "."))


# ── numbers ──────────────────────────────────────────────────────────────────


def parse_threshold(text: Optional[str]) -> Optional[float]:
    s = _clean(text)
    for pattern in _THRESHOLD_PATTERNS:
        m = pattern.search(s)
        if m:
            return _to_float(m.group(1))
    return None


def parse_at_least(text: Optional[str]) -> Optional[int]:
    """'3+' / '3 or more' → 3."""
    s = _clean(text)
    m = re.search(r"(\d+)\s*(?:\+|or more\b)", s)
    return int(m.group(1)) if m else None


def parse_count(text: Optional[str]) -> Optional[int]:
    s = _clean(text)
    m = re.search(r"\d+", s)
    if m:
        return int(m.group(0))
    if re.search(r"\bno goals?\b|\bnone\b|\bzero\b", s):
        return 0
    return None


def parse_handicap(text: Optional[str]) -> Optional[float]:
    """Signed line from '-1.5', '(+0.5)', '1 AH', 'Home -1'. None if absent."""
    s = _clean(text)
    for pattern in _HANDICAP_PATTERNS:
        m = pattern.search(s)
        if m:
            return _to_float(m.group(1))
    return None


def parse_score(text: Optional[str]) -> Optional[tuple[int, int]]:
    s = _clean(text)
    m = re.search(r"(\d+)\s*[-:]\s*(\d+)", s)
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


def parse_range(text: Optional[str]) -> Optional[tuple[int, int]]:
    s = _clean(text)
    m = re.search(r"(\d+)\s*(?:-|to)\s*(\d+)", s)
    if not m:
        return None
    low, high = int(m.group(1)), int(m.group(2))
    return (low, high) if low <= high else (high, low)


# ── choices ──────────────────────────────────────────────────────────────────


def parse_direction(text: Optional[str]) -> Optional[str]:
    """OVER / UNDER / EXACT."""
    s = _clean(text)
    if not s:
        return None
    if s in {"o", "over"} or re.search(r"\bover\b", s) or re.search(r"\d\s*\+", s):
        return "OVER"
    if s in {"u", "under"} or re.search(r"\bunder\b", s):
        return "UNDER"
    if re.search(r"\bexact(ly)?\b", s):
        return "EXACT"
    return None


def _lookup_word(s: str, mapping: dict[str, str], min_len: int = 3) -> Optional[str]:
    if s in mapping:
        return mapping[s]
    found = {v for k, v in mapping.items() if len(k) >= min_len and re.search(rf"\b{re.escape(k)}\b", s)}
    if len(found) == 1:
        return found.pop()
    return None


def parse_result(text: Optional[str]) -> Optional[str]:
    """HOME / DRAW / AWAY from '1', 'X', 'Home', 'Draw', …"""
    return _lookup_word(_clean(text), _RESULT_MAP)


def parse_side(text: Optional[str]) -> Optional[str]:
    result = parse_result(text)
    return result if result in {"HOME", "AWAY"} else None


def parse_yes_no(text: Optional[str]) -> Optional[str]:
    return _lookup_word(_clean(text), _YES_NO_MAP, min_len=2)


def parse_odd_even(text: Optional[str]) -> Optional[str]:
    s = _clean(text)
    has_odd = re.search(r"\bodd\b", s) is not None
    has_even = re.search(r"\beven\b", s) is not None
    if has_odd == has_even:
        return None
    return "ODD" if has_odd else "EVEN"


def parse_half(text: Optional[str]) -> Optional[str]:
    return _lookup_word(_clean(text), _HALF_MAP)


def parse_scorer_kind(text: Optional[str]) -> Optional[str]:
    s = _clean(text)
    if re.search(r"\bfirst\b|\b1st\b", s):
        return "FIRST"
    if re.search(r"\blast\b", s):
        return "LAST"
    if re.search(r"\banytime\b|\bany time\b|\bto score\b", s):
        return "ANYTIME"
    return None


def split_two_part(text: Optional[str]) -> Optional[tuple[str, str]]:
    """'Home/Over' or 'TeamA - Draw' → (first, second)."""
    if not text:
        return None
    for sep in ("/", " - ", " & ", " and "):
        if sep in text:
            first, _, second = text.partition(sep)
            if first.strip() and second.strip():
                return first.strip(), second.strip()
    return None
