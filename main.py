from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any

from api_client import SportMonksClient
from models import Bet, CombinationBet, Leg, Selection
from settlement import settle, settle_combination


def _selection(item: dict[str, Any]) -> Selection:
    return Selection(
        market=item["market"],
        label=str(item.get("label") or ""),
        threshold=float(item["threshold"]) if item.get("threshold") is not None else None,
        handicap=float(item["handicap"]) if item.get("handicap") is not None else None,
        participant=item.get("participant"),
        text=str(item.get("text") or ""),
        description=item.get("description"),
        odd_id=str(item["odd_id"]) if item.get("odd_id") is not None else None,
    )


def _event_id(item: dict[str, Any]) -> str | None:
    return str(item["event_id"]) if item.get("event_id") is not None else None


def load_input(path: Path) -> tuple[Bet | CombinationBet, dict[str, Any]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    snapshots = {str(k): v for k, v in (payload.get("snapshots") or {}).items()}

    if "combination" in payload:
        combo = payload["combination"]
        legs = [
            Leg(
                selection=_selection(leg["selection"]),
                odds=str(leg["odds"]),
                event_id=_event_id(leg),
                event_name=leg.get("event_name"),
                inplay=bool(leg.get("inplay", False)),
                status=leg.get("status", "pending"),
                reason=leg.get("reason", ""),
            )
            for leg in combo.get("legs", [])
        ]
        return CombinationBet(stake=str(combo["stake"]), legs=legs, bet_id=combo.get("bet_id")), snapshots

    item = payload["bet"]
    bet = Bet(
        stake=str(item["stake"]),
        odds=str(item["odds"]),
        selection=_selection(item["selection"]),
        event_id=_event_id(item),
        event_name=item.get("event_name"),
        inplay=bool(item.get("inplay", False)),
        bet_id=item.get("bet_id"),
    )
    return bet, snapshots


def _event_ids(bet: Bet | CombinationBet) -> list[str]:
    if isinstance(bet, CombinationBet):
        return [leg.event_id for leg in bet.legs if leg.event_id is not None]
    return [bet.event_id] if bet.event_id is not None else []


def main() -> None:
    parser = argparse.ArgumentParser(description="Settle a bet or combination against final match data")
    parser.add_argument("--input", required=True, help="Path to slip JSON")
    parser.add_argument("--fetch", action="store_true", help="Fetch missing fixture snapshots from SportMonks")
    parser.add_argument("--api-token", required=False, help="SportMonks token (optional if SPORTMONKS_API_TOKEN is set)")
    parser.add_argument("--require-finished", action="store_true", help="Keep bets pending until the match is finished")
    args = parser.parse_args()

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

    bet, snapshots = load_input(Path(args.input))
    if args.fetch:
        client = SportMonksClient(api_token=args.api_token)
        for event_id in _event_ids(bet):
            if event_id not in snapshots:
                snapshots[event_id] = client.get_fixture_snapshot(event_id)

    if isinstance(bet, CombinationBet):
        outcome = settle_combination(bet, snapshots, require_finished=args.require_finished)
    else:
        outcome = settle(bet, snapshots.get(bet.event_id or ""), require_finished=args.require_finished)

    print(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
