from __future__ import annotations

import unittest
from decimal import Decimal

from evaluator import evaluate, settle_from_winning_flag
from markets import lookup
from models import (
    Bet,
    CornerCounts,
    GoalEvent,
    MatchFacts,
    OutcomeStatus,
    PlayerLine,
    Selection,
)


def make_facts(ft=(2, 1), ht=(1, 0), **kwargs) -> MatchFacts:
    second_half = None if ht is None else (ft[0] - ht[0], ft[1] - ht[1])
    return MatchFacts(
        fixture_id=1,
        home_team="Urawa Red Diamonds",
        away_team="Kashima Antlers",
        home_id=10,
        away_id=20,
        fulltime=ft,
        halftime=ht,
        second_half=second_half,
        finished=True,
        **kwargs,
    )


def run(facts: MatchFacts, market, stake="10", odds="2.0", inplay=False, **selection):
    bet = Bet(stake=stake, odds=odds, selection=Selection(market=market, **selection), inplay=inplay)
    return evaluate(bet, facts, lookup(market))


class ResultMarketTests(unittest.TestCase):
    def test_match_result_home(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 1, label="1")
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertEqual(outcome.payout, Decimal("20"))

    def test_match_result_by_team_nickname(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 1, label="Urawa Reds")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_match_result_unresolvable_selection_cancels(self) -> None:
        outcome = run(make_facts(), 1, label="Somebody Else")
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)
        self.assertEqual(outcome.payout, Decimal("10"))

    def test_half_time_result(self) -> None:
        outcome = run(make_facts(ft=(1, 2), ht=(1, 0)), 22, label="Home")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_half_time_result_without_half_time_score(self) -> None:
        outcome = run(make_facts(ht=None), 22, label="Home")
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)

    def test_second_half_result(self) -> None:
        outcome = run(make_facts(ft=(1, 2), ht=(1, 0)), 23, label="2")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_double_chance_code(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 2, label="X2")
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_double_chance_team_or_draw(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(0, 0)), 2, label="Urawa Reds or Draw")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_draw_no_bet_draw_is_push(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(0, 0)), 10, label="1")
        self.assertEqual(outcome.status, OutcomeStatus.PUSH)
        self.assertEqual(outcome.payout, Decimal("10"))

    def test_half_time_full_time(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(1, 0)), 29, label="1/X")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_win_both_halves(self) -> None:
        outcome = run(make_facts(ft=(3, 1), ht=(1, 0)), 41, label="Yes")
        self.assertEqual(outcome.status, OutcomeStatus.WON)


class GoalMarketTests(unittest.TestCase):
    def test_over_under_won_payout(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 80, stake="100", odds=1.9, label="Over", threshold=2.5)
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertEqual(outcome.payout, Decimal("190"))

    def test_over_under_boundary_is_strict(self) -> None:
        facts = make_facts(ft=(1, 1), ht=(0, 0))
        self.assertEqual(run(facts, 80, label="Over", threshold=2).status, OutcomeStatus.LOST)
        self.assertEqual(run(facts, 80, label="Under", threshold=2).status, OutcomeStatus.LOST)
        self.assertEqual(run(facts, 80, label="Exactly", threshold=2).status, OutcomeStatus.WON)

    def test_over_under_threshold_parsed_from_label(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(0, 0)), 80, label="Under 2.5")
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertEqual(outcome.details["threshold_source"], "parsed")

    def test_over_under_at_least_notation(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 80, label="3+")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_over_under_default_threshold(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 80, label="Over")
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertEqual(outcome.details["threshold"], 2.5)
        self.assertEqual(outcome.details["threshold_source"], "default")

    def test_over_under_without_direction_cancels(self) -> None:
        outcome = run(make_facts(), 80, label="Banana")
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)
        self.assertEqual(outcome.details["selection_text"], "Banana")

    def test_first_half_over_under(self) -> None:
        outcome = run(make_facts(ft=(3, 1), ht=(1, 0)), 28, label="Under", threshold=1.5)
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_second_half_over_under(self) -> None:
        outcome = run(make_facts(ft=(3, 1), ht=(1, 1)), 53, label="Over", threshold=1.5)
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_team_total_goals_by_team_name(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 86, label="Over", threshold=0.5, participant="Kashima Antlers")
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertEqual(outcome.details["side"], "AWAY")

    def test_home_team_goals(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 20, label="Under", threshold=1.5)
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_exact_total_goals(self) -> None:
        facts = make_facts(ft=(2, 1))
        self.assertEqual(run(facts, 93, label="3").status, OutcomeStatus.WON)
        self.assertEqual(run(facts, 93, label="4+").status, OutcomeStatus.LOST)

    def test_team_exact_goals(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 18, label="2")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_odd_even(self) -> None:
        facts = make_facts(ft=(2, 1), ht=(1, 0))
        self.assertEqual(run(facts, 12, label="Odd").status, OutcomeStatus.WON)
        self.assertEqual(run(facts, 95, label="Even").status, OutcomeStatus.LOST)

    def test_highest_scoring_half(self) -> None:
        outcome = run(make_facts(ft=(2, 1), ht=(0, 0)), "HIGHEST_SCORING_HALF", label="2nd Half")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_btts_no_at_zero_two(self) -> None:
        outcome = run(make_facts(ft=(0, 2), ht=(0, 1)), "BTTS", stake="50", odds="1.5", label="No")
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertEqual(outcome.payout, Decimal("75"))

    def test_btts_both_halves(self) -> None:
        outcome = run(make_facts(ft=(2, 2), ht=(1, 1)), 125, label="Yes")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_team_to_score_in_first_half(self) -> None:
        outcome = run(make_facts(ft=(2, 1), ht=(1, 0)), 24, label="Away")
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_clean_sheet(self) -> None:
        facts = make_facts(ft=(2, 0), ht=(1, 0))
        self.assertEqual(run(facts, 50, label="Yes").status, OutcomeStatus.WON)
        self.assertEqual(run(facts, 17, label="Away").status, OutcomeStatus.LOST)

    def test_win_to_nil(self) -> None:
        outcome = run(make_facts(ft=(2, 0), ht=(1, 0)), "WIN_TO_NIL", label="Home")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_correct_score(self) -> None:
        facts = make_facts(ft=(2, 1))
        self.assertEqual(run(facts, 8, label="2-1").status, OutcomeStatus.WON)
        self.assertEqual(run(facts, 8, label="1:0").status, OutcomeStatus.LOST)


class HandicapMarketTests(unittest.TestCase):
    def test_asian_handicap_exact_tie_is_push(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 6, stake="40", label="Home", handicap=-1)
        self.assertEqual(outcome.status, OutcomeStatus.PUSH)
        self.assertEqual(outcome.payout, Decimal("40"))

    def test_asian_handicap_line_from_label(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 6, label="Away +1.5")
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertEqual(outcome.details["handicap"], 1.5)

    def test_asian_handicap_unparseable_line_cancels(self) -> None:
        outcome = run(make_facts(), 6, label="Home")
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)

    def test_three_way_handicap_draw(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 9, label="Draw", handicap=-1)
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_three_way_handicap_tie_pushes_side_and_pays_draw(self) -> None:
        # 2-1 with -1 ties at 1-1: the Home stake comes back, the Draw pick wins
        facts = make_facts(ft=(2, 1))
        home = run(facts, 9, label="Home", handicap=-1)
        self.assertEqual(home.status, OutcomeStatus.PUSH)
        self.assertEqual(home.payout, Decimal("10"))
        draw = run(facts, 9, label="Draw", handicap=-1)
        self.assertEqual(draw.status, OutcomeStatus.WON)
        self.assertEqual(draw.payout, Decimal("20.0"))


class PlayerMarketTests(unittest.TestCase):
    def setUp(self) -> None:
        self.goals = [
            GoalEvent(minute=12, participant_id=10, player_name="John Smith"),
            GoalEvent(minute=90, extra_minute=3, participant_id=20, player_name="Ken Tanaka"),
        ]
        self.players = [
            PlayerLine(player_name="John Smith", team_id=10, stats={86: 3.0, 42: 5.0}),
            PlayerLine(player_name="Ken Tanaka", team_id=20, stats={}),
        ]

    def test_anytime_goalscorer_with_initial(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(1, 0), goals=self.goals), 90, label="Anytime", participant="J. Smith")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_first_goalscorer(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(1, 0), goals=self.goals), 90, label="First", participant="Ken Tanaka")
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_last_goalscorer_uses_stoppage_time(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(1, 0), goals=self.goals), 90, label="Last", participant="K. Tanaka")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_absent_goalscorer_is_lost(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(1, 0), goals=self.goals), 90, label="Anytime", participant="Pedro Alves")
        self.assertEqual(outcome.status, OutcomeStatus.LOST)
        self.assertEqual(outcome.payout, Decimal("0"))

    def test_goalscorer_in_goalless_match_is_lost(self) -> None:
        outcome = run(make_facts(ft=(0, 0), ht=(0, 0), goals=[]), 90, label="Anytime", participant="John Smith")
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_goalscorer_without_events_cancels(self) -> None:
        outcome = run(make_facts(), 90, label="Anytime", participant="John Smith")
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)

    def test_last_team_to_score(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(1, 0), goals=self.goals), 11, label="2")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_last_team_to_score_no_goal(self) -> None:
        outcome = run(make_facts(ft=(0, 0), ht=(0, 0), goals=[]), 11, label="No Goal")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_player_shots_on_target(self) -> None:
        outcome = run(make_facts(players=self.players), 267, participant="J. Smith", threshold=2.5)
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertEqual(outcome.details["matched_player"], "John Smith")

    def test_player_total_shots_threshold_from_label(self) -> None:
        outcome = run(make_facts(players=self.players), 268, participant="John Smith", label="Over 5.5")
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_player_missing_from_lineups_is_lost(self) -> None:
        outcome = run(make_facts(players=self.players), 267, participant="Pedro Alves", threshold=0.5)
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_player_missing_stat_is_lost(self) -> None:
        outcome = run(make_facts(players=self.players), 267, participant="Ken Tanaka", threshold=0.5)
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_player_shots_without_lineups_cancels(self) -> None:
        outcome = run(make_facts(), 267, participant="John Smith", threshold=0.5)
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)


class CornerMarketTests(unittest.TestCase):
    def setUp(self) -> None:
        self.facts = make_facts(corners=CornerCounts(home=6, away=5))

    def test_total_corners_over(self) -> None:
        outcome = run(self.facts, 67, label="Over", threshold=10.5)
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertEqual(outcome.details["total_corners"], 11)

    def test_corner_range(self) -> None:
        outcome = run(self.facts, 69, label="6 - 8")
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_exact_corners(self) -> None:
        outcome = run(self.facts, 69, label="Exactly 11")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_team_corners(self) -> None:
        outcome = run(self.facts, 60, label="1", text="Over", threshold=5.5)
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_exact_team_corners_ignore_side_token(self) -> None:
        facts = make_facts(corners=CornerCounts(home=5, away=4))
        outcome = run(facts, 60, label="1", participant="Exactly 5")
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertIn("exactly 5", outcome.reason)

    def test_missing_corners_use_winning_flag(self) -> None:
        facts = make_facts(odds={"501": {"id": 501, "winning": False}})
        outcome = run(facts, 67, label="Over", threshold=9.5, odd_id="501")
        self.assertEqual(outcome.status, OutcomeStatus.LOST)

    def test_missing_corners_without_flag_cancel(self) -> None:
        outcome = run(make_facts(), 67, label="Over", threshold=9.5)
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)


class ComboMarketTests(unittest.TestCase):
    def test_result_total_goals(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 37, participant="Home", label="Over", threshold=2.5)
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_result_btts(self) -> None:
        outcome = run(make_facts(ft=(2, 1)), 13, label="Home/Yes")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_half_time_result_total_goals(self) -> None:
        outcome = run(make_facts(ft=(1, 1), ht=(0, 0)), 123, label="Draw/Over", participant="1.5")
        self.assertEqual(outcome.status, OutcomeStatus.WON)


class WinningFlagTests(unittest.TestCase):
    def flag(self, facts: MatchFacts, market=1, inplay=False, **selection):
        bet = Bet(stake="10", odds="2", selection=Selection(market=market, **selection), inplay=inplay)
        return settle_from_winning_flag(bet, facts, lookup(market))

    def test_flag_true_wins(self) -> None:
        facts = make_facts(odds={"7": {"id": 7, "winning": True}})
        outcome = self.flag(facts, label="2", odd_id="7")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_missing_odd_cancels_before_kickoff(self) -> None:
        outcome = self.flag(make_facts(), label="1", odd_id="7")
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)

    def test_missing_odd_in_play_falls_back_to_local_algorithm(self) -> None:
        outcome = self.flag(make_facts(ft=(2, 1)), label="1", odd_id="7", inplay=True)
        self.assertEqual(outcome.status, OutcomeStatus.WON)
        self.assertIn("fallback", outcome.details)

    def test_unresolved_flag_is_pending(self) -> None:
        facts = make_facts(odds={"7": {"id": 7, "winning": None}})
        outcome = self.flag(facts, label="1", odd_id="7")
        self.assertEqual(outcome.status, OutcomeStatus.PENDING)
        self.assertEqual(outcome.payout, Decimal("0"))

    def test_absent_flag_cancels(self) -> None:
        facts = make_facts(odds={"7": {"id": 7}})
        outcome = self.flag(facts, label="1", odd_id="7")
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)

    def test_generic_in_play_team_goals_description(self) -> None:
        facts = make_facts(ft=(2, 1), odds={"7": {"id": 7, "winning": None}})
        outcome = self.flag(
            facts, market=9999, label="Over", threshold=1.5, participant="Home",
            description="Team Total Goals", odd_id="7", inplay=True,
        )
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_generic_market_uses_flag(self) -> None:
        facts = make_facts(odds={"55": {"id": 55, "winning": True}})
        outcome = run(facts, 9999, label="Anything", odd_id="55")
        self.assertEqual(outcome.status, OutcomeStatus.WON)

    def test_generic_market_without_flag_cancels(self) -> None:
        outcome = run(make_facts(), 9999, label="Anything")
        self.assertEqual(outcome.status, OutcomeStatus.CANCELED)


if __name__ == "__main__":
    unittest.main()
