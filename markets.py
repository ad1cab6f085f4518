"""
Market registry: upstream market identifiers → settlement family + scope.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from models import MarketFamily

F = MarketFamily


@dataclass(frozen=True)
class MarketSpec:
    family: MarketFamily
    period: str = "FT"            # "FT", "HT" or "2H"
    side: Optional[str] = None    # "HOME" / "AWAY" when the id fixes the team
    name: str = ""


GENERIC_SPEC = MarketSpec(F.GENERIC, name="Unknown market")


# ═══════════════════════════════════════════════════════════════════════════════
#  Numeric identifiers
# ═══════════════════════════════════════════════════════════════════════════════

MARKET_TABLE: dict[int, MarketSpec] = {
    # ── result ──
    1: MarketSpec(F.MATCH_RESULT, name="Fulltime Result"),
    2: MarketSpec(F.DOUBLE_CHANCE, name="Double Chance"),
    10: MarketSpec(F.DRAW_NO_BET, name="Draw No Bet"),
    22: MarketSpec(F.HALF_TIME_RESULT, "HT", name="Half Time Result"),
    23: MarketSpec(F.SECOND_HALF_RESULT, "2H", name="To Win 2nd Half"),
    97: MarketSpec(F.SECOND_HALF_RESULT, "2H", name="2nd Half Result"),
    29: MarketSpec(F.HALF_TIME_FULL_TIME, name="Half Time/Full Time"),
    39: MarketSpec(F.WIN_BOTH_HALVES, side="AWAY", name="Away Team Win Both Halves"),
    41: MarketSpec(F.WIN_BOTH_HALVES, side="HOME", name="Home Team Win Both Halves"),
    # ── goals ──
    4: MarketSpec(F.OVER_UNDER, name="Match Goals"),
    5: MarketSpec(F.OVER_UNDER, name="Alternative Match Goals"),
    7: MarketSpec(F.OVER_UNDER, name="Goal Line"),
    80: MarketSpec(F.OVER_UNDER, name="Goals Over/Under"),
    81: MarketSpec(F.OVER_UNDER, name="Alternative Total Goals"),
    27: MarketSpec(F.OVER_UNDER, "HT", name="1st Half Goal Line"),
    28: MarketSpec(F.OVER_UNDER, "HT", name="1st Half Goals"),
    53: MarketSpec(F.OVER_UNDER, "2H", name="2nd Half Goals"),
    20: MarketSpec(F.TEAM_TOTAL_GOALS, side="HOME", name="Home Team Goals"),
    21: MarketSpec(F.TEAM_TOTAL_GOALS, side="AWAY", name="Away Team Goals"),
    86: MarketSpec(F.TEAM_TOTAL_GOALS, name="Team Total Goals"),
    93: MarketSpec(F.EXACT_TOTAL_GOALS, name="Exact Total Goals"),
    18: MarketSpec(F.TEAM_EXACT_GOALS, side="HOME", name="Home Team Exact Goals"),
    19: MarketSpec(F.TEAM_EXACT_GOALS, side="AWAY", name="Away Team Exact Goals"),
    33: MarketSpec(F.HALF_EXACT_GOALS, "HT", name="1st Half Exact Goals"),
    38: MarketSpec(F.HALF_EXACT_GOALS, "2H", name="2nd Half Exact Goals"),
    12: MarketSpec(F.ODD_EVEN_GOALS, name="Goals Odd/Even"),
    44: MarketSpec(F.ODD_EVEN_GOALS, name="Odd/Even"),
    95: MarketSpec(F.ODD_EVEN_GOALS, "HT", name="1st Half Goals Odd/Even"),
    124: MarketSpec(F.ODD_EVEN_GOALS, "2H", name="2nd Half Goals Odd/Even"),
    14: MarketSpec(F.BOTH_TEAMS_TO_SCORE, name="Both Teams To Score"),
    15: MarketSpec(F.BOTH_TEAMS_TO_SCORE, "HT", name="Both Teams To Score 1st Half"),
    16: MarketSpec(F.BOTH_TEAMS_TO_SCORE, "2H", name="Both Teams To Score 2nd Half"),
    125: MarketSpec(F.BTTS_BOTH_HALVES, name="Both Teams To Score 1st Half/2nd Half"),
    24: MarketSpec(F.TEAM_TO_SCORE_IN_HALF, "HT", name="Team To Score 1st Half"),
    25: MarketSpec(F.TEAM_TO_SCORE_IN_HALF, "2H", name="Team To Score 2nd Half"),
    17: MarketSpec(F.CLEAN_SHEET, name="Team Clean Sheet"),
    50: MarketSpec(F.CLEAN_SHEET, side="HOME", name="Home Team Clean Sheet"),
    51: MarketSpec(F.CLEAN_SHEET, side="AWAY", name="Away Team Clean Sheet"),
    8: MarketSpec(F.CORRECT_SCORE, name="Correct Score"),
    # ── handicap ──
    6: MarketSpec(F.ASIAN_HANDICAP, name="Asian Handicap"),
    26: MarketSpec(F.ASIAN_HANDICAP, "HT", name="1st Half Asian Handicap"),
    9: MarketSpec(F.THREE_WAY_HANDICAP, name="3-Way Handicap"),
    # ── events / players ──
    11: MarketSpec(F.LAST_TEAM_TO_SCORE, name="Last Team To Score"),
    90: MarketSpec(F.GOALSCORER, name="Goalscorers"),
    267: MarketSpec(F.PLAYER_SHOTS_ON_TARGET, name="Player Shots On Target"),
    268: MarketSpec(F.PLAYER_TOTAL_SHOTS, name="Player Total Shots"),
    # ── statistics ──
    60: MarketSpec(F.CORNERS, name="Corners"),
    67: MarketSpec(F.CORNERS, name="Total Corners"),
    68: MarketSpec(F.CORNERS, name="Alternative Corners"),
    69: MarketSpec(F.CORNERS, name="Exact Corners"),
    # ── combos ──
    13: MarketSpec(F.RESULT_BOTH_TEAMS_TO_SCORE, name="Result/Both Teams To Score"),
    37: MarketSpec(F.RESULT_TOTAL_GOALS, name="Result/Total Goals"),
    123: MarketSpec(F.HALF_TIME_RESULT_TOTAL_GOALS, name="Half Time Result/Total Goals"),
}

# Outcome read from the upstream ``winning`` flag of the chosen odd.
WINNING_FLAG_MARKETS = frozenset({1, 10, 14, 18, 19, 33, 38, 39, 41, 44, 50, 51})


# ═══════════════════════════════════════════════════════════════════════════════
#  String identifiers
# ═══════════════════════════════════════════════════════════════════════════════

_MARKET_ALIASES: dict[str, MarketSpec] = {
    "1X2": MARKET_TABLE[1],
    "FULLTIME_RESULT": MARKET_TABLE[1],
    "FULL_TIME_RESULT": MARKET_TABLE[1],
    "MATCH_WINNER": MARKET_TABLE[1],
    "DC": MARKET_TABLE[2],
    "DNB": MARKET_TABLE[10],
    "OU": MARKET_TABLE[80],
    "TOTAL_GOALS": MARKET_TABLE[80],
    "GOALS_OVER_UNDER": MARKET_TABLE[80],
    "HT_OVER_UNDER": MARKET_TABLE[28],
    "SECOND_HALF_OVER_UNDER": MARKET_TABLE[53],
    "BTTS": MARKET_TABLE[14],
    "GGNG": MARKET_TABLE[14],
    "HT_BTTS": MARKET_TABLE[15],
    "SECOND_HALF_BTTS": MARKET_TABLE[16],
    "CS": MARKET_TABLE[8],
    "AH": MARKET_TABLE[6],
    "HT_ASIAN_HANDICAP": MARKET_TABLE[26],
    "EUROPEAN_HANDICAP": MARKET_TABLE[9],
    "HT_FT": MARKET_TABLE[29],
    "HALF_TIME_FULL_TIME": MARKET_TABLE[29],
    "ODD_EVEN": MARKET_TABLE[12],
    "HT_ODD_EVEN": MARKET_TABLE[95],
    "SECOND_HALF_ODD_EVEN": MARKET_TABLE[124],
    "ANYTIME_GOALSCORER": MARKET_TABLE[90],
    "GOALSCORERS": MARKET_TABLE[90],
    "WIN_TO_NIL": MarketSpec(F.WIN_TO_NIL, name="Win To Nil"),
    "HIGHEST_SCORING_HALF": MarketSpec(F.HIGHEST_SCORING_HALF, name="Highest Scoring Half"),
    "TOTAL_CORNERS": MARKET_TABLE[67],
}


def _register_family_names() -> None:
    # Every family name is itself an accepted identifier.
    for family in MarketFamily:
        if family.value in _MARKET_ALIASES:
            continue
        spec = next((s for s in MARKET_TABLE.values() if s.family == family and s.side is None), None)
        _MARKET_ALIASES[family.value] = spec or MarketSpec(family, name=family.value.replace("_", " ").title())


_register_family_names()


def _normalize_key(value: str) -> str:
    key = value.strip().upper()
    for ch in "-/ ().,?'":
        key = key.replace(ch, "_")
    while "__" in key:
        key = key.replace("__", "_")
    return key.strip("_")


def _numeric_id(market_id: int | str | None) -> Optional[int]:
    if isinstance(market_id, bool):
        return None
    if isinstance(market_id, int):
        return market_id
    if isinstance(market_id, str) and market_id.strip().isdigit():
        return int(market_id.strip())
    return None


# ═══════════════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════════════


def lookup(market_id: int | str | None) -> MarketSpec:
    numeric = _numeric_id(market_id)
    if numeric is not None:
        return MARKET_TABLE.get(numeric, GENERIC_SPEC)
    if isinstance(market_id, str) and market_id.strip():
        return _MARKET_ALIASES.get(_normalize_key(market_id), GENERIC_SPEC)
    return GENERIC_SPEC


def classify(market_id: int | str | None) -> MarketFamily:
    return lookup(market_id).family


def uses_winning_flag(market_id: int | str | None) -> bool:
    return _numeric_id(market_id) in WINNING_FLAG_MARKETS


def supported_markets() -> list[dict]:
    return [
        {
            "id": market_id,
            "name": spec.name,
            "family": spec.family.value,
            "period": spec.period,
            "side": spec.side,
            "winning_flag": market_id in WINNING_FLAG_MARKETS,
        }
        for market_id, spec in sorted(MARKET_TABLE.items())
    ]
