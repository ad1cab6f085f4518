from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

MAX_COMBINATION_LEGS = 10


class OutcomeStatus(str, Enum):
    WON = "won"
    LOST = "lost"
    PUSH = "push"
    CANCELED = "canceled"
    VOID = "void"
    ERROR = "error"
    PENDING = "pending"


TERMINAL_STATUSES = frozenset(
    {OutcomeStatus.WON, OutcomeStatus.LOST, OutcomeStatus.CANCELED, OutcomeStatus.VOID}
)

# Statuses that hand the stake back.
REFUND_STATUSES = frozenset({OutcomeStatus.PUSH, OutcomeStatus.CANCELED, OutcomeStatus.VOID})


class MarketFamily(str, Enum):
    GENERIC = "GENERIC"
    # ── result ──
    MATCH_RESULT = "MATCH_RESULT"
    DOUBLE_CHANCE = "DOUBLE_CHANCE"
    DRAW_NO_BET = "DRAW_NO_BET"
    HALF_TIME_RESULT = "HALF_TIME_RESULT"
    SECOND_HALF_RESULT = "SECOND_HALF_RESULT"
    HALF_TIME_FULL_TIME = "HALF_TIME_FULL_TIME"
    WIN_BOTH_HALVES = "WIN_BOTH_HALVES"
    # ── goals ──
    OVER_UNDER = "OVER_UNDER"
    TEAM_TOTAL_GOALS = "TEAM_TOTAL_GOALS"
    EXACT_TOTAL_GOALS = "EXACT_TOTAL_GOALS"
    TEAM_EXACT_GOALS = "TEAM_EXACT_GOALS"
    HALF_EXACT_GOALS = "HALF_EXACT_GOALS"
    ODD_EVEN_GOALS = "ODD_EVEN_GOALS"
    HIGHEST_SCORING_HALF = "HIGHEST_SCORING_HALF"
    BOTH_TEAMS_TO_SCORE = "BOTH_TEAMS_TO_SCORE"
    BTTS_BOTH_HALVES = "BTTS_BOTH_HALVES"
    TEAM_TO_SCORE_IN_HALF = "TEAM_TO_SCORE_IN_HALF"
    CLEAN_SHEET = "CLEAN_SHEET"
    WIN_TO_NIL = "WIN_TO_NIL"
    CORRECT_SCORE = "CORRECT_SCORE"
    # ── handicap ──
    ASIAN_HANDICAP = "ASIAN_HANDICAP"
    THREE_WAY_HANDICAP = "THREE_WAY_HANDICAP"
    # ── events / players ──
    GOALSCORER = "GOALSCORER"
    LAST_TEAM_TO_SCORE = "LAST_TEAM_TO_SCORE"
    PLAYER_SHOTS_ON_TARGET = "PLAYER_SHOTS_ON_TARGET"
    PLAYER_TOTAL_SHOTS = "PLAYER_TOTAL_SHOTS"
    # ── statistics ──
    CORNERS = "CORNERS"
    # ── combos ──
    RESULT_TOTAL_GOALS = "RESULT_TOTAL_GOALS"
    RESULT_BOTH_TEAMS_TO_SCORE = "RESULT_BOTH_TEAMS_TO_SCORE"
    HALF_TIME_RESULT_TOTAL_GOALS = "HALF_TIME_RESULT_TOTAL_GOALS"


def to_money(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


# ═══════════════════════════════════════════════════════════════════════════════
#  Bets
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class Selection:
    market: int | str
    label: str = ""
    threshold: Optional[float] = None
    handicap: Optional[float] = None
    participant: Optional[str] = None   # player / team / result part
    text: str = ""                      # free-text bet option
    description: Optional[str] = None   # market description
    odd_id: Optional[str] = None

    def raw_text(self) -> str:
        """Every human-readable piece of the selection, for audit and fallback parsing."""
        parts = [self.label, self.participant, self.text]
        return " | ".join(p for p in parts if p)


@dataclass
class Bet:
    stake: Decimal
    odds: Decimal
    selection: Selection
    event_id: Optional[str] = None
    event_name: Optional[str] = None
    inplay: bool = False
    bet_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.stake = to_money(self.stake)
        self.odds = to_money(self.odds)
        if self.stake <= 0:
            raise ValueError(f"Stake must be positive, got {self.stake}")
        if self.odds < 1:
            raise ValueError(f"Odds must be >= 1.0, got {self.odds}")


@dataclass
class Leg:
    selection: Selection
    odds: Decimal
    event_id: Optional[str] = None
    event_name: Optional[str] = None
    inplay: bool = False
    status: OutcomeStatus = OutcomeStatus.PENDING
    payout: Decimal = Decimal("0")
    reason: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.odds = to_money(self.odds)
        self.payout = to_money(self.payout)
        self.status = OutcomeStatus(self.status)
        if self.odds < 1:
            raise ValueError(f"Leg odds must be >= 1.0, got {self.odds}")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass
class CombinationBet:
    stake: Decimal
    legs: list[Leg]
    bet_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.stake = to_money(self.stake)
        if self.stake <= 0:
            raise ValueError(f"Stake must be positive, got {self.stake}")
        if len(self.legs) < 2:
            raise ValueError("A combination bet needs at least 2 legs")
        if len(self.legs) > MAX_COMBINATION_LEGS:
            raise ValueError(f"A combination bet allows at most {MAX_COMBINATION_LEGS} legs")

    @property
    def odds(self) -> Decimal:
        total = Decimal("1")
        for leg in self.legs:
            total *= leg.odds
        return total


# ═══════════════════════════════════════════════════════════════════════════════
#  Match facts
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class GoalEvent:
    minute: int
    extra_minute: int = 0
    participant_id: Optional[int] = None
    player_name: Optional[str] = None

    @property
    def clock(self) -> int:
        return self.minute + self.extra_minute


@dataclass
class CornerCounts:
    home: int
    away: int

    @property
    def total(self) -> int:
        return self.home + self.away


@dataclass
class PlayerLine:
    player_name: str
    team_id: Optional[int] = None
    stats: dict[int, float] = field(default_factory=dict)


@dataclass
class MatchFacts:
    fixture_id: Optional[int | str] = None
    home_team: str = ""
    away_team: str = ""
    home_id: Optional[int] = None
    away_id: Optional[int] = None
    fulltime: tuple[int, int] = (0, 0)
    halftime: Optional[tuple[int, int]] = None
    second_half: Optional[tuple[int, int]] = None
    goals: Optional[list[GoalEvent]] = None      # None: events not reported
    corners: Optional[CornerCounts] = None
    players: Optional[list[PlayerLine]] = None   # None: lineups not reported
    odds: dict[str, dict[str, Any]] = field(default_factory=dict)
    finished: bool = False
    state: Optional[str] = None

    @property
    def name(self) -> str:
        if self.home_team or self.away_team:
            return f"{self.home_team or 'Home'} vs {self.away_team or 'Away'}"
        return str(self.fixture_id or "Unknown match")

    def goals_ascending(self) -> list[GoalEvent]:
        return sorted(self.goals or [], key=lambda g: g.clock)

    def goals_descending(self) -> list[GoalEvent]:
        return sorted(self.goals or [], key=lambda g: g.clock, reverse=True)

    def side_of(self, participant_id: Optional[int]) -> Optional[str]:
        if participant_id is None:
            return None
        if participant_id == self.home_id:
            return "HOME"
        if participant_id == self.away_id:
            return "AWAY"
        return None

    def team_name(self, side: str) -> str:
        return self.home_team if side == "HOME" else self.away_team


# ═══════════════════════════════════════════════════════════════════════════════
#  Outcome
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class Outcome:
    status: OutcomeStatus
    payout: Decimal
    reason: str
    details: dict[str, Any] = field(default_factory=dict)
    legs: list[Leg] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status.value,
            "payout": str(self.payout),
            "reason": self.reason,
            "details": self.details,
        }
        if self.legs:
            data["legs"] = [
                {
                    "event_id": leg.event_id,
                    "event_name": leg.event_name,
                    "market": leg.selection.market,
                    "odds": str(leg.odds),
                    "status": leg.status.value,
                    "payout": str(leg.payout),
                    "reason": leg.reason,
                }
                for leg in self.legs
            ]
        return data


def payout_for(status: OutcomeStatus, stake: Decimal, odds: Decimal) -> Decimal:
    if status == OutcomeStatus.WON:
        return stake * odds
    if status in REFUND_STATUSES:
        return stake
    return Decimal("0")
