from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from evaluator import evaluate, settle_from_winning_flag
from facts import extract_facts
from markets import lookup, uses_winning_flag
from models import (
    Bet,
    CombinationBet,
    Leg,
    MatchFacts,
    Outcome,
    OutcomeStatus,
    payout_for,
)

logger = logging.getLogger(__name__)

FactsLike = Union[MatchFacts, Mapping[str, Any], None]

# Statuses that cancel a whole combination (stake refunded).
_CANCEL_LIKE = frozenset({OutcomeStatus.CANCELED, OutcomeStatus.VOID, OutcomeStatus.ERROR, OutcomeStatus.PUSH})


def _as_facts(facts: FactsLike) -> Optional[MatchFacts]:
    if facts is None or isinstance(facts, MatchFacts):
        return facts
    return extract_facts(facts)


# ═══════════════════════════════════════════════════════════════════════════════
#  Single bet
# ═══════════════════════════════════════════════════════════════════════════════


def _settle(bet: Bet, facts: FactsLike, require_finished: bool) -> Outcome:
    facts = _as_facts(facts)
    if facts is None:
        return Outcome(OutcomeStatus.PENDING, Decimal("0"), "Match data not available yet")
    if require_finished and not facts.finished:
        return Outcome(
            OutcomeStatus.PENDING, Decimal("0"),
            f"Match {facts.name} not finished (state: {facts.state or 'unknown'})",
        )

    market = bet.selection.market
    spec = lookup(market)
    if uses_winning_flag(market):
        logger.debug("Market %s settled from upstream winning flag", market)
        outcome = settle_from_winning_flag(bet, facts, spec)
    else:
        outcome = evaluate(bet, facts, spec)

    outcome.details.setdefault("market_family", spec.family.value)
    outcome.details.setdefault("match", facts.name)
    return outcome


def settle(bet: Bet, facts: FactsLike, require_finished: bool = False) -> Outcome:
    """Settle one bet against the facts (or raw snapshot) of its match.

    Never raises: any unexpected failure is reported as an ``error`` outcome
    with a zero payout.
    """
    try:
        return _settle(bet, facts, require_finished)
    except Exception as exc:
        logger.exception("Settlement failed for bet %s (market %s)", bet.bet_id, bet.selection.market)
        return Outcome(OutcomeStatus.ERROR, Decimal("0"), f"Error: {exc}", details={"error": str(exc)})


def settle_batch(bets: list[Bet], facts_by_event: Mapping[Any, FactsLike]) -> list[Outcome]:
    outcomes: list[Outcome] = []
    for bet in bets:
        facts = _facts_for(facts_by_event, bet.event_id)
        if facts is None:
            outcomes.append(Outcome(OutcomeStatus.ERROR, Decimal("0"), "Match data not available"))
            continue
        outcomes.append(settle(bet, facts))
    return outcomes


def _facts_for(facts_by_event: Mapping[Any, FactsLike], event_id: Any) -> FactsLike:
    if event_id is None:
        return None
    if event_id in facts_by_event:
        return facts_by_event[event_id]
    return facts_by_event.get(str(event_id))


# ═══════════════════════════════════════════════════════════════════════════════
#  Combination bet
# ═══════════════════════════════════════════════════════════════════════════════


def combination_status(statuses: list[OutcomeStatus]) -> OutcomeStatus:
    if any(s in _CANCEL_LIKE for s in statuses):
        return OutcomeStatus.CANCELED
    if OutcomeStatus.LOST in statuses:
        return OutcomeStatus.LOST
    if OutcomeStatus.PENDING in statuses:
        return OutcomeStatus.PENDING
    return OutcomeStatus.WON


def _settle_leg(leg: Leg, stake: Decimal, facts_by_event: Mapping[Any, FactsLike], require_finished: bool) -> Leg:
    if leg.is_terminal:
        return leg
    facts = _facts_for(facts_by_event, leg.event_id)
    if facts is None:
        return replace(leg, status=OutcomeStatus.PENDING, payout=Decimal("0"),
                       reason="Match data not available yet", details={})

    single = Bet(
        stake=stake,
        odds=leg.odds,
        selection=leg.selection,
        event_id=leg.event_id,
        event_name=leg.event_name,
        inplay=leg.inplay,
    )
    outcome = settle(single, facts, require_finished)
    event_name = leg.event_name or outcome.details.get("match")
    return replace(
        leg,
        event_name=event_name,
        status=outcome.status,
        payout=payout_for(outcome.status, stake, leg.odds),
        reason=outcome.reason,
        details=dict(outcome.details),
    )


def _headline(status: OutcomeStatus, counts: dict[str, int], total: int) -> str:
    if status == OutcomeStatus.WON:
        return f"All {total} legs successful"
    if status == OutcomeStatus.LOST:
        return f"{counts['lost']} of {total} legs failed"
    if status == OutcomeStatus.CANCELED:
        return f"{counts['canceled']} of {total} legs canceled, stake refunded"
    return f"{counts['pending']} of {total} legs still pending"


def settle_combination(
    bet: CombinationBet,
    facts_by_event: Mapping[Any, FactsLike],
    require_finished: bool = False,
) -> Outcome:
    """Settle every leg, then fold the leg statuses into one outcome.

    Legs already in a terminal state are kept as they are; the input bet is
    not modified.
    """
    legs = [_settle_leg(leg, bet.stake, facts_by_event, require_finished) for leg in bet.legs]
    statuses = [leg.status for leg in legs]
    status = combination_status(statuses)

    counts = {
        "won": sum(s == OutcomeStatus.WON for s in statuses),
        "lost": sum(s == OutcomeStatus.LOST for s in statuses),
        "canceled": sum(s in _CANCEL_LIKE for s in statuses),
        "pending": sum(s == OutcomeStatus.PENDING for s in statuses),
    }
    total_odds = bet.odds

    if status == OutcomeStatus.WON:
        payout = bet.stake * total_odds
    elif status == OutcomeStatus.CANCELED:
        payout = bet.stake
    else:
        payout = Decimal("0")

    leg_lines = " | ".join(
        f"Leg {i} ({leg.event_name or leg.event_id or 'unknown match'}): {leg.reason or leg.status.value}"
        for i, leg in enumerate(legs, start=1)
    )
    reason = f"Combination bet {status.value}: {_headline(status, counts, len(legs))}. Details: {leg_lines}"

    logger.debug("Combination %s settled as %s (%s)", bet.bet_id, status.value, counts)
    return Outcome(
        status=status,
        payout=payout,
        reason=reason,
        details={
            "total_legs": len(legs),
            "won_legs": counts["won"],
            "lost_legs": counts["lost"],
            "canceled_legs": counts["canceled"],
            "pending_legs": counts["pending"],
            "total_odds": str(total_odds),
        },
        legs=legs,
    )
