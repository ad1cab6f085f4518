"""
Team and player name normalisation + fuzzy matching.

Feeds spell the same person or club differently ("J. Smith" / "John Smith",
"Urawa Red Diamonds" / "Urawa Reds", "Müller" / "Muller"). Everything here is
a pure string function.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Optional, TypeVar

from rapidfuzz.distance import Levenshtein

T = TypeVar("T")

MIN_FUZZY_LENGTH = 6
MAX_EDIT_DISTANCE = 2

_NAME_SUFFIXES = {"jr": "junior", "sr": "senior", "ii": "2", "iii": "3", "iv": "4"}


# ═══════════════════════════════════════════════════════════════════════════════
#  Club decorators / nicknames
# ═══════════════════════════════════════════════════════════════════════════════

_CLUB_PREFIXES = ["fc ", "ac ", "as ", "afc ", "ssc ", "ss ", "us ", "uc ",
                  "rcd ", "cd ", "rc ", "ud ", "cf ", "sc ", "vfl ", "vfb ",
                  "fsv ", "sv ", "tsv ", "tsg "]

_CLUB_SUFFIX_WORDS = {"fc", "cf", "ac", "sc", "united", "city", "town", "rovers",
                      "wanderers", "albion", "athletic", "hotspur"}

# Applied in order on the normalised name.
_NICKNAME_ALIASES: list[tuple[str, str]] = [
    (r"\bred diamonds\b", "reds"),
    (r"\bdiamonds\b", "reds"),
    (r"\bwhites\b", ""),
    (r"\bblues\b", ""),
    (r"\butd\b", "united"),
]


# ═══════════════════════════════════════════════════════════════════════════════
#  Normalisation
# ═══════════════════════════════════════════════════════════════════════════════


def fold_accents(text: str) -> str:
    nfd = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in nfd if unicodedata.category(ch) != "Mn")


def normalize_name(raw: Optional[str]) -> str:
    """Lowercase, accent-free, punctuation-free, single-spaced name."""
    if not raw:
        return ""
    s = fold_accents(raw).lower()
    s = re.sub(r"[^a-z0-9\s]", " ", s)
    tokens = [_NAME_SUFFIXES.get(t, t) for t in s.split()]
    return " ".join(tokens)


def normalize_team_name(raw: Optional[str]) -> str:
    s = normalize_name(raw)
    for pattern, repl in _NICKNAME_ALIASES:
        s = re.sub(pattern, repl, s)
    for p in _CLUB_PREFIXES:
        if s.startswith(p):
            s = s[len(p):]
            break
    tokens = s.split()
    # trailing decorator only; a lone "City" stays
    if len(tokens) > 1 and tokens[-1] in _CLUB_SUFFIX_WORDS:
        tokens = tokens[:-1]
    return " ".join(tokens)


# ═══════════════════════════════════════════════════════════════════════════════
#  Matching
# ═══════════════════════════════════════════════════════════════════════════════


def _prefix_match(a: str, b: str) -> bool:
    if a == b:
        return True
    if len(a) >= 3 and len(b) >= 3:
        return a.startswith(b) or b.startswith(a)
    return False


def _given_names_match(a: str, b: str) -> bool:
    # initial vs full given name ("j" / "john"); only before a shared surname
    if len(a) == 1 or len(b) == 1:
        return a[0] == b[0]
    return _prefix_match(a, b)


def _fuzzy_fallback(a: str, b: str) -> bool:
    if len(a) < MIN_FUZZY_LENGTH or len(b) < MIN_FUZZY_LENGTH:
        return False
    if a in b or b in a:
        return True
    return Levenshtein.distance(a, b) <= MAX_EDIT_DISTANCE


def names_match(a: Optional[str], b: Optional[str]) -> bool:
    """Player-name comparison tolerant to initials, accents and small typos."""
    na, nb = normalize_name(a), normalize_name(b)
    if not na or not nb:
        return False
    if na == nb:
        return True

    ta, tb = na.split(), nb.split()
    if len(ta) > 1 and len(tb) > 1:
        if ta[-1] == tb[-1]:
            if any(_given_names_match(x, y) for x in ta[:-1] for y in tb[:-1]):
                return True
        if ta[0] == tb[0] and len(ta[0]) >= 3:
            if any(_prefix_match(x, y) for x in ta[1:] for y in tb[1:]):
                return True

    return _fuzzy_fallback(na, nb)


def team_names_match(a: Optional[str], b: Optional[str]) -> bool:
    na, nb = normalize_team_name(a), normalize_team_name(b)
    if not na or not nb:
        return False
    if na == nb:
        return True
    if _fuzzy_fallback(na, nb):
        return True
    words_a = {w for w in na.split() if len(w) > 2}
    words_b = {w for w in nb.split() if len(w) > 2}
    return len(words_a & words_b) >= 2


def text_mentions_team(text: Optional[str], team: Optional[str]) -> bool:
    """True when a free-text selection ("Urawa Reds or Draw") names the team."""
    nt = normalize_team_name(team)
    if not text or not nt:
        return False
    nx = normalize_team_name(text)
    if re.search(rf"\b{re.escape(nt)}\b", nx):
        return True
    return team_names_match(text, team)


def find_by_name(name: Optional[str], candidates: Iterable[T], key) -> Optional[T]:
    """First candidate whose ``key(candidate)`` matches ``name``."""
    for candidate in candidates:
        if names_match(name, key(candidate)):
            return candidate
    return None
