"""
Raw fixture snapshot → MatchFacts.

The snapshot is the fixture payload of the match data provider (SportMonks v3
``/fixtures/{id}`` with participants, scores, events, statistics, lineups,
state and odds included). Missing sections yield ``None`` facts; nothing here
raises on incomplete data.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from models import CornerCounts, GoalEvent, MatchFacts, PlayerLine
from names import find_by_name

logger = logging.getLogger(__name__)

FINISHED_STATE_ID = 5
FINISHED_STATE_NAMES = {"finished", "ended", "ft", "fulltime", "full time", "completed", "closed"}

GOAL_TYPE_ID = 14
CORNERS_TYPE_ID = 34
SHOTS_TOTAL_TYPE_ID = 42
SHOTS_ON_TARGET_TYPE_ID = 86

FIRST_HALF = "1ST_HALF"
SECOND_HALF_ONLY = "2ND_HALF_ONLY"
LEGACY_HALF_TIME = {"HT", "HALFTIME"}


# ── helpers ──────────────────────────────────────────────────────────────────


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        cleaned = value.strip().replace("%", "")
        if cleaned.lstrip("-").isdigit():
            return int(cleaned)
    return None


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _section(snapshot: Mapping[str, Any], key: str) -> Optional[list]:
    value = snapshot.get(key)
    if isinstance(value, Mapping) and isinstance(value.get("data"), list):
        # v3 responses sometimes wrap includes as {"data": [...]}
        value = value["data"]
    return value if isinstance(value, list) else None


# ═══════════════════════════════════════════════════════════════════════════════
#  Scores
# ═══════════════════════════════════════════════════════════════════════════════


def _sum_scores(scores: Iterable[Mapping[str, Any]], descriptions: set[str]) -> tuple[tuple[int, int], bool]:
    home = away = 0
    seen = False
    for entry in scores:
        if entry.get("description") not in descriptions:
            continue
        score = entry.get("score") or {}
        goals = _to_int(score.get("goals"))
        if goals is None:
            continue
        participant = score.get("participant")
        if participant == "home":
            home += goals
            seen = True
        elif participant == "away":
            away += goals
            seen = True
    return (home, away), seen


def fulltime_score(scores: Optional[list]) -> tuple[int, int]:
    if not scores:
        return 0, 0
    total, _ = _sum_scores(scores, {FIRST_HALF, SECOND_HALF_ONLY})
    return total


def halftime_score(scores: Optional[list]) -> tuple[int, int] | None:
    if not scores:
        return None
    first_half, seen = _sum_scores(scores, {FIRST_HALF})
    if seen:
        return first_half
    for entry in scores:
        if entry.get("description") in LEGACY_HALF_TIME:
            goals = (entry.get("score") or {}).get("goals")
            if isinstance(goals, Mapping):
                return _to_int(goals.get("home")) or 0, _to_int(goals.get("away")) or 0
    return None


def second_half_score(scores: Optional[list]) -> tuple[int, int] | None:
    if scores is None:
        return None
    second_half, _ = _sum_scores(scores, {SECOND_HALF_ONLY})
    return second_half


# ═══════════════════════════════════════════════════════════════════════════════
#  Events / statistics / lineups
# ═══════════════════════════════════════════════════════════════════════════════


def goal_events(events: Optional[list]) -> list[GoalEvent] | None:
    if events is None:
        return None
    goals: list[GoalEvent] = []
    for ev in events:
        if _to_int(ev.get("type_id")) != GOAL_TYPE_ID:
            continue
        goals.append(GoalEvent(
            minute=_to_int(ev.get("minute")) or 0,
            extra_minute=_to_int(ev.get("extra_minute")) or 0,
            participant_id=_to_int(ev.get("participant_id")),
            player_name=ev.get("player_name"),
        ))
    goals.sort(key=lambda g: g.clock)
    return goals


def corner_counts(statistics: Optional[list]) -> CornerCounts | None:
    if statistics is None:
        return None
    home = away = None
    for stat in statistics:
        if _to_int(stat.get("type_id")) != CORNERS_TYPE_ID:
            continue
        value = _to_int((stat.get("data") or {}).get("value"))
        if value is None:
            continue
        if stat.get("location") == "home":
            home = value
        elif stat.get("location") == "away":
            away = value
    if home is None and away is None:
        return None
    return CornerCounts(home=home or 0, away=away or 0)


def player_lines(lineups: Optional[list]) -> list[PlayerLine] | None:
    if lineups is None:
        return None
    players: list[PlayerLine] = []
    for row in lineups:
        name = row.get("player_name") or (row.get("player") or {}).get("display_name")
        if not name:
            continue
        stats: dict[int, float] = {}
        for detail in row.get("details") or []:
            type_id = _to_int(detail.get("type_id"))
            value = _to_float((detail.get("data") or {}).get("value"))
            if type_id is not None and value is not None:
                stats[type_id] = value
        players.append(PlayerLine(player_name=name, team_id=_to_int(row.get("team_id")), stats=stats))
    return players


# ═══════════════════════════════════════════════════════════════════════════════
#  Participants / state / odds
# ═══════════════════════════════════════════════════════════════════════════════


def _participants(snapshot: Mapping[str, Any]) -> tuple[dict, dict]:
    participants = _section(snapshot, "participants") or []
    home = away = None
    for p in participants:
        location = ((p.get("meta") or {}).get("location") or "").lower()
        if location == "home":
            home = p
        elif location == "away":
            away = p
    # Positional fallback: only when the feed omits meta.location.
    if home is None and len(participants) > 0:
        home = participants[0]
        logger.debug("Home participant resolved positionally for fixture %s", snapshot.get("id"))
    if away is None and len(participants) > 1:
        away = participants[1]
    return home or {}, away or {}


def is_finished(state: Any) -> bool:
    if not isinstance(state, Mapping):
        return False
    if _to_int(state.get("id")) == FINISHED_STATE_ID:
        return True
    name = state.get("name") or state.get("state") or state.get("developer_name") or ""
    return str(name).strip().lower() in FINISHED_STATE_NAMES


def _odds_index(odds: Optional[list]) -> dict[str, dict[str, Any]]:
    index: dict[str, dict[str, Any]] = {}
    for odd in odds or []:
        if odd.get("id") is not None:
            index[str(odd["id"])] = dict(odd)
    return index


# ═══════════════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════════════


def extract_facts(snapshot: Mapping[str, Any]) -> MatchFacts:
    home, away = _participants(snapshot)
    scores = _section(snapshot, "scores")
    state = snapshot.get("state")

    facts = MatchFacts(
        fixture_id=snapshot.get("id"),
        home_team=home.get("name") or "",
        away_team=away.get("name") or "",
        home_id=_to_int(home.get("id")),
        away_id=_to_int(away.get("id")),
        fulltime=fulltime_score(scores),
        halftime=halftime_score(scores),
        second_half=second_half_score(scores),
        goals=goal_events(_section(snapshot, "events")),
        corners=corner_counts(_section(snapshot, "statistics")),
        players=player_lines(_section(snapshot, "lineups")),
        odds=_odds_index(_section(snapshot, "odds")),
        finished=is_finished(state),
        state=(state or {}).get("name") if isinstance(state, Mapping) else None,
    )
    logger.debug(
        "Extracted facts for %s: FT=%s HT=%s 2H=%s goals=%s corners=%s finished=%s",
        facts.name, facts.fulltime, facts.halftime, facts.second_half,
        None if facts.goals is None else len(facts.goals), facts.corners, facts.finished,
    )
    return facts


def player_stat(facts: MatchFacts, player_name: str, type_id: int) -> tuple[Optional[PlayerLine], Optional[float]]:
    """Resolve a player in the lineups and read one statistic.

    Returns ``(None, None)`` when the player is not in the lineups and
    ``(line, None)`` when the player is there but the statistic is not.
    """
    if not facts.players:
        return None, None
    line = find_by_name(player_name, facts.players, key=lambda p: p.player_name)
    if line is None:
        return None, None
    return line, line.stats.get(type_id)
