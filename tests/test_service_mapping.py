from __future__ import annotations

import unittest
from decimal import Decimal
from unittest import mock

from fastapi.testclient import TestClient

import service
from models import OutcomeStatus
from service import BetIn, CombinationBetIn, _to_bet, _to_combination, app


def snapshot() -> dict:
    return {
        "id": 7,
        "participants": [
            {"id": 1, "name": "Arsenal", "meta": {"location": "home"}},
            {"id": 2, "name": "Chelsea", "meta": {"location": "away"}},
        ],
        "scores": [
            {"description": "1ST_HALF", "score": {"goals": 1, "participant": "home"}},
            {"description": "1ST_HALF", "score": {"goals": 0, "participant": "away"}},
            {"description": "2ND_HALF_ONLY", "score": {"goals": 1, "participant": "home"}},
            {"description": "2ND_HALF_ONLY", "score": {"goals": 1, "participant": "away"}},
        ],
        "state": {"id": 5, "name": "Full Time"},
    }


class MappingTests(unittest.TestCase):
    def test_bet_mapping(self) -> None:
        bet = _to_bet(BetIn(
            stake="100", odds="1.9", event_id=7,
            selection={"market": 80, "label": " Over ", "threshold": 2.5, "odd_id": 55},
        ))
        self.assertEqual(bet.stake, Decimal("100"))
        self.assertEqual(bet.event_id, "7")
        self.assertEqual(bet.selection.label, "Over")
        self.assertEqual(bet.selection.odd_id, "55")

    def test_blank_participant_becomes_none(self) -> None:
        bet = _to_bet(BetIn(stake=1, odds=1, selection={"market": "BTTS", "participant": "  "}))
        self.assertIsNone(bet.selection.participant)

    def test_invalid_stake_rejected(self) -> None:
        with self.assertRaises(ValueError):
            BetIn(stake=0, odds=2, selection={"market": 1})

    def test_invalid_odds_rejected(self) -> None:
        with self.assertRaises(ValueError):
            BetIn(stake=10, odds="0.5", selection={"market": 1})

    def test_empty_market_rejected(self) -> None:
        with self.assertRaises(ValueError):
            BetIn(stake=10, odds=2, selection={"market": "  "})

    def test_combination_leg_limits(self) -> None:
        leg = {"odds": 2, "event_id": 7, "selection": {"market": 8, "label": "2-1"}}
        with self.assertRaises(ValueError):
            CombinationBetIn(stake=10, legs=[leg])
        with self.assertRaises(ValueError):
            CombinationBetIn(stake=10, legs=[leg] * 11)

    def test_combination_mapping_keeps_leg_status(self) -> None:
        combo = _to_combination(CombinationBetIn(stake=10, legs=[
            {"odds": 2, "event_id": 7, "selection": {"market": 8, "label": "2-1"}, "status": "won"},
            {"odds": 3, "event_id": 8, "selection": {"market": 8, "label": "0-0"}},
        ]))
        self.assertEqual(combo.legs[0].status, OutcomeStatus.WON)
        self.assertEqual(combo.odds, Decimal("6"))


class EndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_supported_markets(self) -> None:
        body = self.client.get("/markets/supported").json()
        self.assertEqual(body["count"], len(body["markets"]))

    def test_settle_with_snapshot(self) -> None:
        response = self.client.post("/settle", json={
            "bet": {"stake": 100, "odds": "1.9", "selection": {"market": 80, "label": "Over", "threshold": 2.5}},
            "snapshot": snapshot(),
        })
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "won")
        self.assertEqual(Decimal(body["payout"]), Decimal("190"))

    def test_settle_fetches_missing_snapshot(self) -> None:
        stub = mock.Mock()
        stub.get_fixture_snapshot.return_value = snapshot()
        with mock.patch.object(service, "SportMonksClient", return_value=stub):
            response = self.client.post("/settle", json={
                "bet": {"stake": 10, "odds": 2, "event_id": 7, "selection": {"market": 8, "label": "2-1"}},
            })
        self.assertEqual(response.json()["status"], "won")
        stub.get_fixture_snapshot.assert_called_once_with("7")

    def test_settle_without_snapshot_or_event(self) -> None:
        response = self.client.post("/settle", json={
            "bet": {"stake": 10, "odds": 2, "selection": {"market": 8, "label": "2-1"}},
        })
        self.assertEqual(response.status_code, 422)

    def test_settle_missing_token(self) -> None:
        with mock.patch.object(service, "SportMonksClient", side_effect=ValueError("Missing API token")):
            response = self.client.post("/settle", json={
                "bet": {"stake": 10, "odds": 2, "event_id": 7, "selection": {"market": 8, "label": "2-1"}},
            })
        self.assertEqual(response.status_code, 400)

    def test_settle_provider_failure(self) -> None:
        stub = mock.Mock()
        stub.get_fixture_snapshot.side_effect = ValueError("Fixture not found for id=7")
        with mock.patch.object(service, "SportMonksClient", return_value=stub):
            response = self.client.post("/settle", json={
                "bet": {"stake": 10, "odds": 2, "event_id": 7, "selection": {"market": 8, "label": "2-1"}},
            })
        self.assertEqual(response.status_code, 502)

    def test_settle_combination(self) -> None:
        response = self.client.post("/settle/combination", json={
            "bet": {"stake": 10, "legs": [
                {"odds": 2, "event_id": 7, "selection": {"market": 8, "label": "2-1"}},
                {"odds": 3, "event_id": 8, "selection": {"market": 8, "label": "0-0"}},
            ]},
            "snapshots": {"7": snapshot()},
        })
        body = response.json()
        self.assertEqual(body["status"], "pending")
        self.assertEqual([leg["status"] for leg in body["legs"]], ["won", "pending"])

    def test_settle_batch(self) -> None:
        response = self.client.post("/settle/batch", json={
            "bets": [
                {"stake": 10, "odds": 2, "event_id": 7, "bet_id": "a", "selection": {"market": 8, "label": "2-1"}},
                {"stake": 10, "odds": 2, "event_id": 9, "bet_id": "b", "selection": {"market": 8, "label": "2-1"}},
            ],
            "snapshots": {"7": snapshot()},
        })
        body = response.json()
        self.assertEqual(body["count"], 2)
        self.assertEqual([r["status"] for r in body["results"]], ["won", "error"])
        self.assertEqual(body["results"][0]["bet_id"], "a")


class StartupTests(unittest.TestCase):
    def test_logging_configured_on_startup_only(self) -> None:
        with mock.patch.object(service, "configure_logging") as configure:
            client = TestClient(app)
            configure.assert_not_called()
            with client:
                configure.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
