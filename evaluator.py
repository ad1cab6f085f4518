from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Optional

import names
import parsing
from facts import SHOTS_ON_TARGET_TYPE_ID, SHOTS_TOTAL_TYPE_ID, player_stat
from markets import MARKET_TABLE, MarketSpec
from models import Bet, MarketFamily, MatchFacts, Outcome, OutcomeStatus, Selection, payout_for

logger = logging.getLogger(__name__)

W = OutcomeStatus.WON
L = OutcomeStatus.LOST
PUSH = OutcomeStatus.PUSH
C = OutcomeStatus.CANCELED
P = OutcomeStatus.PENDING

F = MarketFamily

_PERIOD_LABEL = {"FT": "Full-time", "HT": "Half-time", "2H": "2nd-half"}

_SIDE_TOKENS = {"1", "2", "home", "away", "h", "a"}


# ═══════════════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def _r(bet: Bet, status: OutcomeStatus, reason: str, **details) -> Outcome:
    """Shorthand outcome builder."""
    details.setdefault("selection_text", bet.selection.raw_text())
    return Outcome(
        status=status,
        payout=payout_for(status, bet.stake, bet.odds),
        reason=reason,
        details=details,
    )


def _result_category(home: int, away: int) -> str:
    if home > away:
        return "HOME"
    if home < away:
        return "AWAY"
    return "DRAW"


def _period_score(facts: MatchFacts, period: str) -> tuple[int, int] | None:
    if period == "FT":
        return facts.fulltime
    if period == "HT":
        return facts.halftime
    if period == "2H":
        return facts.second_half
    return None


def _score_text(sc: tuple[int, int]) -> str:
    return f"{sc[0]}-{sc[1]}"


def _texts(sel: Selection) -> list[str]:
    return [t for t in (sel.label, sel.participant, sel.text) if t]


def _first(parser: Callable[[str], object], texts: Iterable[Optional[str]]):
    for text in texts:
        if not text:
            continue
        value = parser(text)
        if value is not None:
            return value
    return None


def _is_side_token(text: Optional[str]) -> bool:
    return (text or "").strip().lower() in _SIDE_TOKENS


def _team_side(text: Optional[str], facts: MatchFacts) -> Optional[str]:
    """HOME / AWAY when the text names exactly one of the two teams."""
    if not text:
        return None
    norm = names.normalize_name(text)
    teams = (("HOME", facts.home_team), ("AWAY", facts.away_team))
    exact = []
    for side, team in teams:
        team_norm = names.normalize_name(team)
        if team_norm and re.search(rf"\b{re.escape(team_norm)}\b", norm):
            exact.append(side)
    if len(exact) == 1:
        return exact[0]
    fuzzy = [side for side, team in teams if team and names.text_mentions_team(text, team)]
    if len(fuzzy) == 1:
        return fuzzy[0]
    return None


def _resolve_side(text: Optional[str], facts: MatchFacts) -> Optional[str]:
    return parsing.parse_side(text) or _team_side(text, facts)


def _resolve_result(text: Optional[str], facts: MatchFacts) -> Optional[str]:
    return parsing.parse_result(text) or _team_side(text, facts)


def _selection_side(sel: Selection, facts: MatchFacts, spec: MarketSpec) -> Optional[str]:
    if spec.side:
        return spec.side
    return _first(lambda t: _resolve_side(t, facts), [sel.label, sel.participant, sel.text, sel.description])


def _line_and_direction(sel: Selection, texts: list[str]) -> tuple[float, Optional[str], str]:
    """Threshold, OVER/UNDER/EXACT direction and where the threshold came from."""
    direction = _first(parsing.parse_direction, texts)
    if sel.threshold is not None:
        return float(sel.threshold), direction, "explicit"
    at_least = _first(parsing.parse_at_least, texts)
    if at_least is not None and direction in (None, "OVER"):
        return at_least - 0.5, "OVER", "parsed"
    threshold = _first(parsing.parse_threshold, texts)
    if threshold is None:
        return parsing.DEFAULT_THRESHOLD, direction, "default"
    return threshold, direction, "parsed"


def _settle_ou(bet: Bet, actual: int | float, threshold: float, direction: str, what: str, **details) -> Outcome:
    if direction == "OVER":
        won = actual > threshold
    elif direction == "UNDER":
        won = actual < threshold
    else:
        won = actual == threshold
    return _r(
        bet, W if won else L,
        f"{what}: {actual:g}, selection {direction.title()} {threshold:g}",
        actual=actual, threshold=threshold, direction=direction, **details,
    )


def _settle_count(bet: Bet, actual: int, texts: list[str], what: str) -> Outcome:
    at_least = _first(parsing.parse_at_least, texts)
    if at_least is not None:
        won = actual >= at_least
        return _r(bet, W if won else L, f"{what}: {actual}, selection {at_least}+", actual=actual, target=at_least)
    target = _first(parsing.parse_count, texts)
    if target is None and bet.selection.threshold is not None:
        target = int(bet.selection.threshold)
    if target is None:
        return _r(bet, C, f"Cannot parse goal count from selection '{bet.selection.raw_text()}'")
    won = actual == target
    return _r(bet, W if won else L, f"{what}: {actual}, selection exactly {target}", actual=actual, target=target)


def _yes_no(sel: Selection, default: Optional[str] = None) -> Optional[str]:
    return _first(parsing.parse_yes_no, _texts(sel)) or default


# ═══════════════════════════════════════════════════════════════════════════════
#  Generic period-parametrised helpers
# ═══════════════════════════════════════════════════════════════════════════════


def _eval_period_result(bet: Bet, facts: MatchFacts, period: str) -> Outcome:
    label = _PERIOD_LABEL[period]
    sc = _period_score(facts, period)
    if sc is None:
        return _r(bet, C, f"{label} score not available")
    pick = _first(lambda t: _resolve_result(t, facts), _texts(bet.selection))
    if pick is None:
        return _r(bet, C, f"Cannot resolve result selection '{bet.selection.raw_text()}'")
    actual = _result_category(*sc)
    return _r(
        bet, W if pick == actual else L,
        f"{label} score {_score_text(sc)} ({actual}), selection {pick}",
        actual_score=_score_text(sc), actual_result=actual, selection=pick,
    )


def _eval_period_over_under(bet: Bet, facts: MatchFacts, period: str) -> Outcome:
    label = _PERIOD_LABEL[period]
    sc = _period_score(facts, period)
    if sc is None:
        return _r(bet, C, f"{label} score not available")
    threshold, direction, source = _line_and_direction(bet.selection, _texts(bet.selection))
    if direction is None:
        return _r(bet, C, f"Cannot determine Over/Under from selection '{bet.selection.raw_text()}'")
    return _settle_ou(
        bet, sc[0] + sc[1], threshold, direction, f"{label} total goals",
        actual_score=_score_text(sc), threshold_source=source,
    )


def _eval_period_btts(bet: Bet, facts: MatchFacts, period: str) -> Outcome:
    label = _PERIOD_LABEL[period]
    sc = _period_score(facts, period)
    if sc is None:
        return _r(bet, C, f"{label} score not available")
    pick = _yes_no(bet.selection)
    if pick is None:
        return _r(bet, C, f"Selection must be Yes or No, got '{bet.selection.raw_text()}'")
    both = sc[0] > 0 and sc[1] > 0
    won = both if pick == "YES" else not both
    return _r(
        bet, W if won else L,
        f"{label} score {_score_text(sc)}, both scored: {'yes' if both else 'no'}",
        actual_score=_score_text(sc), both_scored=both, selection=pick,
    )


def _eval_period_odd_even(bet: Bet, facts: MatchFacts, period: str) -> Outcome:
    label = _PERIOD_LABEL[period]
    sc = _period_score(facts, period)
    if sc is None:
        return _r(bet, C, f"{label} score not available")
    pick = _first(parsing.parse_odd_even, _texts(bet.selection))
    if pick is None:
        return _r(bet, C, f"Selection must be Odd or Even, got '{bet.selection.raw_text()}'")
    total = sc[0] + sc[1]
    actual = "EVEN" if total % 2 == 0 else "ODD"
    return _r(bet, W if pick == actual else L, f"{label} total goals {total} ({actual})", actual=actual, total=total)


def _eval_period_correct_score(bet: Bet, facts: MatchFacts, period: str) -> Outcome:
    label = _PERIOD_LABEL[period]
    sc = _period_score(facts, period)
    if sc is None:
        return _r(bet, C, f"{label} score not available")
    pick = _first(parsing.parse_score, _texts(bet.selection))
    if pick is None:
        return _r(bet, C, f"Cannot parse score from selection '{bet.selection.raw_text()}'")
    won = pick == sc
    return _r(
        bet, W if won else L,
        f"{label} score {_score_text(sc)}, selection {_score_text(pick)}",
        actual_score=_score_text(sc), selected_score=_score_text(pick),
    )


def _eval_period_handicap(bet: Bet, facts: MatchFacts, period: str, three_way: bool) -> Outcome:
    label = _PERIOD_LABEL[period]
    sel = bet.selection
    sc = _period_score(facts, period)
    if sc is None:
        return _r(bet, C, f"{label} score not available")

    line_texts = [t for t in (sel.label, sel.text, sel.participant) if t and not _is_side_token(t)]
    line = sel.handicap if sel.handicap is not None else _first(parsing.parse_handicap, line_texts)
    if line is None:
        return _r(bet, C, f"Cannot parse handicap from selection '{sel.raw_text()}'")

    resolver = _resolve_result if three_way else _resolve_side
    pick = _first(lambda t: resolver(t, facts), _texts(sel))
    if pick is None:
        return _r(bet, C, f"Cannot resolve handicap side from selection '{sel.raw_text()}'", handicap=line)

    home, away = float(sc[0]), float(sc[1])
    if pick == "DRAW":
        # three-way draw: line applies to the home side
        adj_home, adj_away = home + line, away
        won = adj_home == adj_away
        return _r(
            bet, W if won else L,
            f"{label} score {_score_text(sc)}, adjusted {adj_home:g}-{adj_away:g}, selection Draw ({line:+g})",
            handicap=line, adjusted_home=adj_home, adjusted_away=adj_away, actual_score=_score_text(sc),
        )

    if pick == "HOME":
        adj_home, adj_away = home + line, away
    else:
        adj_home, adj_away = home, away + line
    details = dict(handicap=line, side=pick, adjusted_home=adj_home, adjusted_away=adj_away,
                   actual_score=_score_text(sc))
    if adj_home == adj_away:
        return _r(bet, PUSH, f"Adjusted score tied {adj_home:g}-{adj_away:g} ({pick} {line:+g}): stake returned", **details)
    won = adj_home > adj_away if pick == "HOME" else adj_away > adj_home
    return _r(bet, W if won else L, f"Adjusted score {adj_home:g}-{adj_away:g} ({pick} {line:+g})", **details)


# ═══════════════════════════════════════════════════════════════════════════════
#  Result markets
# ═══════════════════════════════════════════════════════════════════════════════


def _result_match_result(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_period_result(bet, facts, spec.period)


def _result_half_time_result(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_period_result(bet, facts, "HT")


def _result_second_half_result(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_period_result(bet, facts, "2H")


def _double_chance_outcomes(text: str, facts: MatchFacts) -> Optional[frozenset[str]]:
    key = text.strip().upper().replace(" ", "")
    codes = {"1X": {"HOME", "DRAW"}, "X2": {"DRAW", "AWAY"}, "12": {"HOME", "AWAY"},
             "X1": {"HOME", "DRAW"}, "2X": {"DRAW", "AWAY"}, "21": {"HOME", "AWAY"}}
    if key in codes:
        return frozenset(codes[key])

    parts = [p for p in re.split(r"\s+or\s+|/|\s+-\s+|\s*&\s*", text, flags=re.IGNORECASE) if p.strip()]
    if len(parts) == 2:
        picks = {_resolve_result(p, facts) for p in parts}
        if None not in picks and len(picks) == 2:
            return frozenset(picks)

    # loose text: "Home or Draw", "Urawa Reds Draw"
    found = set()
    lowered = text.lower()
    if re.search(r"\bdraw\b|\btie\b|\bx\b", lowered):
        found.add("DRAW")
    if re.search(r"\bhome\b", lowered):
        found.add("HOME")
    if re.search(r"\baway\b", lowered):
        found.add("AWAY")
    for side, team in (("HOME", facts.home_team), ("AWAY", facts.away_team)):
        if team and names.text_mentions_team(text, team):
            found.add(side)
    return frozenset(found) if len(found) == 2 else None


def _result_double_chance(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sc = _period_score(facts, spec.period)
    if sc is None:
        return _r(bet, C, f"{_PERIOD_LABEL[spec.period]} score not available")
    covered = _first(lambda t: _double_chance_outcomes(t, facts), _texts(bet.selection))
    if covered is None:
        return _r(bet, C, f"Cannot resolve double chance selection '{bet.selection.raw_text()}'")
    actual = _result_category(*sc)
    return _r(
        bet, W if actual in covered else L,
        f"Score {_score_text(sc)} ({actual}), selection covers {'/'.join(sorted(covered))}",
        actual_result=actual, covered=sorted(covered),
    )


def _result_draw_no_bet(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sc = _period_score(facts, spec.period)
    if sc is None:
        return _r(bet, C, f"{_PERIOD_LABEL[spec.period]} score not available")
    pick = _first(lambda t: _resolve_side(t, facts), _texts(bet.selection))
    if pick is None:
        return _r(bet, C, f"Cannot resolve draw-no-bet side '{bet.selection.raw_text()}'")
    if sc[0] == sc[1]:
        return _r(bet, PUSH, f"Draw {_score_text(sc)}: stake returned", actual_score=_score_text(sc))
    actual = _result_category(*sc)
    return _r(bet, W if pick == actual else L, f"Score {_score_text(sc)} ({actual})", actual_result=actual)


def _result_half_time_full_time(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    ht = facts.halftime
    if ht is None:
        return _r(bet, C, "Half-time score not available")
    parts = _first(parsing.split_two_part, _texts(bet.selection))
    if parts is None:
        return _r(bet, C, f"Half-time/full-time selection must have two parts, got '{bet.selection.raw_text()}'")
    ht_pick = _resolve_result(parts[0], facts)
    ft_pick = _resolve_result(parts[1], facts)
    if ht_pick is None or ft_pick is None:
        return _r(bet, C, f"Cannot resolve half-time/full-time selection '{bet.selection.raw_text()}'")
    ft = facts.fulltime
    ht_actual, ft_actual = _result_category(*ht), _result_category(*ft)
    won = ht_pick == ht_actual and ft_pick == ft_actual
    return _r(
        bet, W if won else L,
        f"HT {_score_text(ht)} ({ht_actual}), FT {_score_text(ft)} ({ft_actual}), selection {ht_pick}/{ft_pick}",
        halftime_result=ht_actual, fulltime_result=ft_actual,
    )


def _result_win_both_halves(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    if facts.halftime is None or facts.second_half is None:
        return _r(bet, C, "Half scores not available")
    side = _selection_side(bet.selection, facts, spec)
    if side is None:
        return _r(bet, C, f"Cannot resolve team from selection '{bet.selection.raw_text()}'")
    both = (_result_category(*facts.halftime) == side
            and _result_category(*facts.second_half) == side)
    won = both if _yes_no(bet.selection, "YES") == "YES" else not both
    return _r(
        bet, W if won else L,
        f"{side} halves: 1st {_score_text(facts.halftime)}, 2nd {_score_text(facts.second_half)}",
        won_both_halves=both,
    )


# ═══════════════════════════════════════════════════════════════════════════════
#  Goal markets
# ═══════════════════════════════════════════════════════════════════════════════


def _result_over_under(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_period_over_under(bet, facts, spec.period)


def _result_team_total_goals(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sel = bet.selection
    side = _selection_side(sel, facts, spec)
    if side is None:
        return _r(bet, C, f"Cannot resolve team from selection '{sel.raw_text()}'")
    sc = _period_score(facts, spec.period)
    if sc is None:
        return _r(bet, C, f"{_PERIOD_LABEL[spec.period]} score not available")
    goals = sc[0] if side == "HOME" else sc[1]
    what = f"{facts.team_name(side) or side} goals"

    texts = [t for t in _texts(sel) if not _is_side_token(t)]
    threshold, direction, source = _line_and_direction(sel, texts)
    if direction is None:
        if source == "default":
            # plain "team to score"
            return _settle_ou(bet, goals, 0.5, "OVER", what, side=side)
        direction = "EXACT"
    return _settle_ou(bet, goals, threshold, direction, what, side=side, threshold_source=source)


def _result_exact_total_goals(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sc = _period_score(facts, spec.period)
    if sc is None:
        return _r(bet, C, f"{_PERIOD_LABEL[spec.period]} score not available")
    return _settle_count(bet, sc[0] + sc[1], _texts(bet.selection), "Total goals")


def _result_team_exact_goals(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sel = bet.selection
    if spec.side:
        side, texts = spec.side, _texts(sel)
    else:
        side = _first(lambda t: _resolve_side(t, facts), [sel.participant, sel.description, sel.text])
        texts = [t for t in (sel.label, sel.text) if t]
    if side is None:
        return _r(bet, C, f"Cannot resolve team from selection '{sel.raw_text()}'")
    goals = facts.fulltime[0] if side == "HOME" else facts.fulltime[1]
    return _settle_count(bet, goals, texts, f"{facts.team_name(side) or side} goals")


def _result_half_exact_goals(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sc = _period_score(facts, spec.period)
    if sc is None:
        return _r(bet, C, f"{_PERIOD_LABEL[spec.period]} score not available")
    return _settle_count(bet, sc[0] + sc[1], _texts(bet.selection), f"{_PERIOD_LABEL[spec.period]} goals")


def _result_odd_even(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_period_odd_even(bet, facts, spec.period)


def _result_highest_scoring_half(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    if facts.halftime is None or facts.second_half is None:
        return _r(bet, C, "Half scores not available")
    pick = _first(parsing.parse_half, _texts(bet.selection))
    if pick is None:
        return _r(bet, C, f"Cannot resolve half from selection '{bet.selection.raw_text()}'")
    first, second = sum(facts.halftime), sum(facts.second_half)
    actual = "FIRST" if first > second else "SECOND" if second > first else "EQUAL"
    return _r(bet, W if pick == actual else L, f"1st half {first} goals, 2nd half {second} goals", actual=actual)


def _result_btts(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_period_btts(bet, facts, spec.period)


def _result_btts_both_halves(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    ht, sh = facts.halftime, facts.second_half
    if ht is None or sh is None:
        return _r(bet, C, "Half scores not available")
    both = ht[0] > 0 and ht[1] > 0 and sh[0] > 0 and sh[1] > 0
    won = both if _yes_no(bet.selection, "YES") == "YES" else not both
    return _r(
        bet, W if won else L,
        f"1st half {_score_text(ht)}, 2nd half {_score_text(sh)}, both scored in both halves: {'yes' if both else 'no'}",
        both_halves=both,
    )


def _result_team_to_score_in_half(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sc = _period_score(facts, spec.period)
    if sc is None:
        return _r(bet, C, f"{_PERIOD_LABEL[spec.period]} score not available")
    side = _selection_side(bet.selection, facts, spec)
    if side is None:
        return _r(bet, C, f"Cannot resolve team from selection '{bet.selection.raw_text()}'")
    scored = (sc[0] if side == "HOME" else sc[1]) > 0
    won = scored if _yes_no(bet.selection, "YES") == "YES" else not scored
    return _r(bet, W if won else L, f"{_PERIOD_LABEL[spec.period]} score {_score_text(sc)}, {side} scored: {scored}")


def _result_clean_sheet(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    side = _selection_side(bet.selection, facts, spec)
    if side is None:
        return _r(bet, C, f"Cannot resolve team from selection '{bet.selection.raw_text()}'")
    home, away = facts.fulltime
    # Home clean sheet means away scored 0 and vice-versa
    clean = away == 0 if side == "HOME" else home == 0
    pick = _yes_no(bet.selection, "YES")
    won = clean if pick == "YES" else not clean
    return _r(bet, W if won else L, f"Score {home}-{away}, {side} clean sheet: {clean}", clean_sheet=clean, side=side)


def _result_win_to_nil(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    side = _selection_side(bet.selection, facts, spec)
    if side is None:
        return _r(bet, C, f"Cannot resolve team from selection '{bet.selection.raw_text()}'")
    home, away = facts.fulltime
    nil = home > 0 and away == 0 if side == "HOME" else away > 0 and home == 0
    won = nil if _yes_no(bet.selection, "YES") == "YES" else not nil
    return _r(bet, W if won else L, f"Score {home}-{away}, {side} won to nil: {nil}")


def _result_correct_score(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_period_correct_score(bet, facts, spec.period)


# ═══════════════════════════════════════════════════════════════════════════════
#  Handicap markets
# ═══════════════════════════════════════════════════════════════════════════════


def _result_asian_handicap(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_period_handicap(bet, facts, spec.period, three_way=False)


def _result_three_way_handicap(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_period_handicap(bet, facts, spec.period, three_way=True)


# ═══════════════════════════════════════════════════════════════════════════════
#  Event / player markets
# ═══════════════════════════════════════════════════════════════════════════════


def _result_goalscorer(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sel = bet.selection
    player = sel.participant
    if not player:
        return _r(bet, C, "Player name not found in selection")
    if facts.goals is None:
        return _r(bet, C, "Goal events not available")
    kind = _first(parsing.parse_scorer_kind, [sel.label, sel.text, sel.description]) or "ANYTIME"
    if not facts.goals:
        return _r(bet, L, "No goals scored in the match", player=player, kind=kind)

    if kind == "FIRST":
        goal = facts.goals_ascending()[0]
        won = names.names_match(goal.player_name, player)
        reason = f"First goal scored by {goal.player_name} ({goal.clock}')"
        scorers = [goal.player_name]
    elif kind == "LAST":
        goal = facts.goals_descending()[0]
        won = names.names_match(goal.player_name, player)
        reason = f"Last goal scored by {goal.player_name} ({goal.clock}')"
        scorers = [goal.player_name]
    else:
        matched = [g for g in facts.goals if names.names_match(g.player_name, player)]
        won = bool(matched)
        reason = (f"{player} scored {len(matched)} goal(s)" if won
                  else f"{player} did not score")
        scorers = [g.player_name for g in facts.goals_ascending()]
    return _r(bet, W if won else L, reason, player=player, kind=kind, scorers=scorers)


def _result_last_team_to_score(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sel = bet.selection
    if facts.goals is None:
        return _r(bet, C, "Goal events not available")
    no_goal = any(re.search(r"\bno goals?\b|\bnone\b", t.lower()) for t in _texts(sel))
    if not facts.goals:
        if no_goal:
            return _r(bet, W, "No goals scored in the match")
        return _r(bet, C, "No goals scored in the match")
    if no_goal:
        return _r(bet, L, f"{len(facts.goals)} goal(s) scored")

    last = facts.goals_descending()[0]
    actual = facts.side_of(last.participant_id)
    if actual is None:
        return _r(bet, C, f"Cannot map scoring participant {last.participant_id} to home/away")
    pick = _first(lambda t: _resolve_side(t, facts), _texts(sel))
    if pick is None:
        return _r(bet, C, f"Cannot resolve team from selection '{sel.raw_text()}'")
    return _r(
        bet, W if pick == actual else L,
        f"Last goal by {facts.team_name(actual) or actual} ({last.clock}')",
        last_scoring_side=actual, last_goal_player=last.player_name,
    )


def _eval_player_stat(bet: Bet, facts: MatchFacts, type_id: int, stat_name: str) -> Outcome:
    sel = bet.selection
    player = sel.participant
    if not player:
        return _r(bet, C, "Player name not found in selection")
    if facts.players is None:
        return _r(bet, C, "Lineups not available")
    threshold = sel.threshold
    if threshold is None:
        threshold = _first(parsing.parse_threshold, [sel.label, sel.text]) or 0.0
    line, value = player_stat(facts, player, type_id)
    if line is None:
        return _r(bet, L, f"Player {player} not found in match lineups", player=player)
    if value is None:
        return _r(bet, L, f"{stat_name} not available for player {line.player_name}", player=player,
                  matched_player=line.player_name)
    won = value > threshold
    return _r(
        bet, W if won else L,
        f"Player {line.player_name} {stat_name.lower()}: {value:g}, threshold {threshold:g}",
        player=player, matched_player=line.player_name, actual=value, threshold=threshold,
    )


def _result_player_shots_on_target(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_player_stat(bet, facts, SHOTS_ON_TARGET_TYPE_ID, "Shots on target")


def _result_player_total_shots(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    return _eval_player_stat(bet, facts, SHOTS_TOTAL_TYPE_ID, "Total shots")


# ═══════════════════════════════════════════════════════════════════════════════
#  Corners
# ═══════════════════════════════════════════════════════════════════════════════


def _result_corners(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sel = bet.selection
    corners = facts.corners
    if corners is None:
        flagged = _outcome_from_flag(bet, facts)
        if flagged is not None:
            return flagged
        return _r(bet, C, "Corner statistics not available")

    texts = _texts(sel)
    side = None
    if any(_is_side_token(t) for t in (sel.label, sel.participant)):
        side = _first(parsing.parse_side, [sel.label, sel.participant])
    else:
        side = _first(lambda t: _team_side(t, facts), texts)
    actual = corners.total if side is None else (corners.home if side == "HOME" else corners.away)
    what = "Total corners" if side is None else f"{facts.team_name(side) or side} corners"
    base = dict(home_corners=corners.home, away_corners=corners.away, total_corners=corners.total)

    line_texts = [t for t in texts if not _is_side_token(t)]

    if any(re.search(r"\bexact(ly)?\b", t.lower()) for t in line_texts):
        target = _first(parsing.parse_count, line_texts)
        if target is None and sel.threshold is not None:
            target = int(sel.threshold)
        if target is None:
            return _r(bet, C, f"Cannot parse corner count from selection '{sel.raw_text()}'", **base)
        return _r(bet, W if actual == target else L, f"{what}: {actual}, selection exactly {target}", **base)

    corner_range = _first(parsing.parse_range, line_texts)
    if corner_range is not None:
        low, high = corner_range
        won = low <= actual <= high
        return _r(bet, W if won else L, f"{what}: {actual}, selection range {low}-{high}", **base)

    threshold, direction, source = _line_and_direction(sel, line_texts)
    if direction is None:
        if source == "default":
            return _r(bet, C, f"Cannot parse corner selection '{sel.raw_text()}'", **base)
        direction = "EXACT"
    return _settle_ou(bet, actual, threshold, direction, what, threshold_source=source, **base)


# ═══════════════════════════════════════════════════════════════════════════════
#  Combo markets
# ═══════════════════════════════════════════════════════════════════════════════


def _result_result_total_goals(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sel = bet.selection
    parts = _first(parsing.split_two_part, [sel.label, sel.text])
    result_text, ou_text = parts if parts else (sel.participant, sel.label)
    pick = _resolve_result(result_text, facts)
    direction = parsing.parse_direction(ou_text)
    if pick is None or direction not in {"OVER", "UNDER"}:
        return _r(bet, C, f"Cannot resolve result/total selection '{sel.raw_text()}'")
    threshold = sel.threshold
    if threshold is None:
        threshold = _first(parsing.parse_threshold, [ou_text, sel.text]) or parsing.DEFAULT_THRESHOLD

    home, away = facts.fulltime
    total = home + away
    actual = _result_category(home, away)
    ou_hit = total > threshold if direction == "OVER" else total < threshold
    won = pick == actual and ou_hit
    return _r(
        bet, W if won else L,
        f"Score {home}-{away} ({actual}, {total} goals), selection {pick}/{direction.title()} {threshold:g}",
        actual_result=actual, total=total, threshold=threshold,
    )


def _result_result_btts(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sel = bet.selection
    parts = _first(parsing.split_two_part, _texts(sel))
    if parts is None:
        return _r(bet, C, f"Result/BTTS selection must have two parts, got '{sel.raw_text()}'")
    pick, yes_no = _resolve_result(parts[0], facts), parsing.parse_yes_no(parts[1])
    if pick is None or yes_no is None:
        pick, yes_no = _resolve_result(parts[1], facts), parsing.parse_yes_no(parts[0])
    if pick is None or yes_no is None:
        return _r(bet, C, f"Cannot resolve result/BTTS selection '{sel.raw_text()}'")
    home, away = facts.fulltime
    actual = _result_category(home, away)
    both = home > 0 and away > 0
    won = pick == actual and both == (yes_no == "YES")
    return _r(
        bet, W if won else L,
        f"Score {home}-{away} ({actual}), both scored: {'yes' if both else 'no'}",
        actual_result=actual, both_scored=both,
    )


def _result_half_time_result_total_goals(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    sel = bet.selection
    ht = facts.halftime
    if ht is None:
        return _r(bet, C, "Half-time score not available")
    parts = _first(parsing.split_two_part, [sel.label, sel.text])
    if parts is None:
        return _r(bet, C, f"Selection must have a result and an Over/Under part, got '{sel.raw_text()}'")
    pick = _resolve_result(parts[0], facts)
    direction = parsing.parse_direction(parts[1])
    threshold = sel.threshold
    if threshold is None:
        threshold = _first(parsing.parse_threshold, [sel.participant, parts[1]])
    if pick is None or direction not in {"OVER", "UNDER"} or threshold is None:
        return _r(bet, C, f"Cannot resolve half-time result/total selection '{sel.raw_text()}'")

    total = sum(facts.fulltime)
    actual = _result_category(*ht)
    ou_hit = total > threshold if direction == "OVER" else total < threshold
    won = pick == actual and ou_hit
    return _r(
        bet, W if won else L,
        f"HT {_score_text(ht)} ({actual}), {total} goals, selection {pick}/{direction.title()} {threshold:g}",
        halftime_result=actual, total=total, threshold=threshold,
    )


# ═══════════════════════════════════════════════════════════════════════════════
#  Winning flag
# ═══════════════════════════════════════════════════════════════════════════════


def _find_odd(bet: Bet, facts: MatchFacts) -> Optional[dict]:
    if bet.selection.odd_id is None:
        return None
    return facts.odds.get(str(bet.selection.odd_id))


def _outcome_from_flag(bet: Bet, facts: MatchFacts) -> Optional[Outcome]:
    """Won/lost from a resolved upstream flag, else None."""
    odd = _find_odd(bet, facts)
    if odd is None or odd.get("winning") is None:
        return None
    winning = bool(odd["winning"])
    return _r(
        bet, W if winning else L,
        f"Settled from upstream result: odd {odd.get('id')} {'won' if winning else 'lost'}",
        odd_id=odd.get("id"), winning=winning,
    )


def _local_fallback(bet: Bet, facts: MatchFacts, spec: MarketSpec, why: str) -> Outcome:
    description = (bet.selection.description or "").lower()
    if spec.family == F.GENERIC and re.search(r"team.*goals|exact goals|total goals", description):
        spec = MARKET_TABLE[86]
    if spec.family == F.GENERIC:
        return _r(bet, C, f"{why}; no local algorithm for market {bet.selection.market}")
    logger.debug("In-play bet on market %s: %s, computing locally as %s", bet.selection.market, why, spec.family.value)
    outcome = evaluate(bet, facts, spec)
    outcome.details.setdefault("fallback", why)
    return outcome


def settle_from_winning_flag(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    flagged = _outcome_from_flag(bet, facts)
    if flagged is not None:
        return flagged

    odd = _find_odd(bet, facts)
    if odd is None:
        if bet.inplay:
            return _local_fallback(bet, facts, spec, "odd not found in final match data")
        return _r(bet, C, f"Odd {bet.selection.odd_id} not found in match data", odd_id=bet.selection.odd_id)
    if bet.inplay:
        return _local_fallback(bet, facts, spec, "upstream result unresolved")
    if "winning" not in odd:
        return _r(bet, C, f"Odd {odd.get('id')} carries no result", odd_id=odd.get("id"))
    return _r(bet, P, f"Upstream result for odd {odd.get('id')} not resolved yet", odd_id=odd.get("id"))


def _result_generic(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    flagged = _outcome_from_flag(bet, facts)
    if flagged is not None:
        return flagged
    return _r(bet, C, f"Unable to settle market {bet.selection.market}: no upstream result available")


# ═══════════════════════════════════════════════════════════════════════════════
#  Registry
# ═══════════════════════════════════════════════════════════════════════════════

MARKET_EVALUATORS: dict[MarketFamily, Callable[[Bet, MatchFacts, MarketSpec], Outcome]] = {
    F.GENERIC: _result_generic,
    # result
    F.MATCH_RESULT: _result_match_result,
    F.DOUBLE_CHANCE: _result_double_chance,
    F.DRAW_NO_BET: _result_draw_no_bet,
    F.HALF_TIME_RESULT: _result_half_time_result,
    F.SECOND_HALF_RESULT: _result_second_half_result,
    F.HALF_TIME_FULL_TIME: _result_half_time_full_time,
    F.WIN_BOTH_HALVES: _result_win_both_halves,
    # goals
    F.OVER_UNDER: _result_over_under,
    F.TEAM_TOTAL_GOALS: _result_team_total_goals,
    F.EXACT_TOTAL_GOALS: _result_exact_total_goals,
    F.TEAM_EXACT_GOALS: _result_team_exact_goals,
    F.HALF_EXACT_GOALS: _result_half_exact_goals,
    F.ODD_EVEN_GOALS: _result_odd_even,
    F.HIGHEST_SCORING_HALF: _result_highest_scoring_half,
    F.BOTH_TEAMS_TO_SCORE: _result_btts,
    F.BTTS_BOTH_HALVES: _result_btts_both_halves,
    F.TEAM_TO_SCORE_IN_HALF: _result_team_to_score_in_half,
    F.CLEAN_SHEET: _result_clean_sheet,
    F.WIN_TO_NIL: _result_win_to_nil,
    F.CORRECT_SCORE: _result_correct_score,
    # handicap
    F.ASIAN_HANDICAP: _result_asian_handicap,
    F.THREE_WAY_HANDICAP: _result_three_way_handicap,
    # events / players
    F.GOALSCORER: _result_goalscorer,
    F.LAST_TEAM_TO_SCORE: _result_last_team_to_score,
    F.PLAYER_SHOTS_ON_TARGET: _result_player_shots_on_target,
    F.PLAYER_TOTAL_SHOTS: _result_player_total_shots,
    # statistics
    F.CORNERS: _result_corners,
    # combos
    F.RESULT_TOTAL_GOALS: _result_result_total_goals,
    F.RESULT_BOTH_TEAMS_TO_SCORE: _result_result_btts,
    F.HALF_TIME_RESULT_TOTAL_GOALS: _result_half_time_result_total_goals,
}


def evaluate(bet: Bet, facts: MatchFacts, spec: MarketSpec) -> Outcome:
    evaluator = MARKET_EVALUATORS.get(spec.family, _result_generic)
    return evaluator(bet, facts, spec)
