from __future__ import annotations

from algo.evolution.rating import Outcome, apply_result, blend, performance_ratings
from shared.models.models import StrategyRecord, WalletMetrics


def _metrics(profit: float, expected: float = 0.0) -> WalletMetrics:
    return WalletMetrics(
        profit=profit,
        expected_profit=expected,
        profit_over_replacement=profit - expected,
        transaction_count=2,
        fees=1.0,
        net_worth=1000.0 * (1 + profit / 100.0),
    )


def test_performance_ratings_are_zero_sum():
    perf_w, perf_l = performance_ratings(1200.0, 1000.0, 400.0)
    assert (perf_w, perf_l) == (1400.0, 800.0)
    assert perf_w + perf_l == 1200.0 + 1000.0


def test_blend_is_game_weighted():
    assert blend(1000.0, 1400.0, 2) == 1200.0
    assert blend(1000.0, 1400.0, 1) == 1400.0


def test_decisive_bull_battle_updates_overall_and_bull_ratings():
    first = StrategyRecord.seeded("a")
    second = StrategyRecord.seeded("b")
    outcome = apply_result(first, second, _metrics(5.0), _metrics(-2.0), bear=False)

    assert outcome is Outcome.FIRST
    assert first.games == second.games == 2
    assert first.elo == 1200.0 and second.elo == 800.0
    assert first.elo + second.elo == 2000.0
    assert first.bull_games == second.bull_games == 2
    assert first.bull_elo == 1200.0 and second.bull_elo == 800.0
    assert first.bear_games == second.bear_games == 1
    assert first.bear_elo == second.bear_elo == 1000.0
    assert abs(first.por - 2.5) < 1e-9
    assert abs(second.por - (-1.0)) < 1e-9


def test_bear_battle_updates_bear_rating_for_second_winner():
    first = StrategyRecord.seeded("a")
    second = StrategyRecord.seeded("b")
    outcome = apply_result(first, second, _metrics(-8.0, -10.0), _metrics(-1.0, -10.0), bear=True)

    assert outcome is Outcome.SECOND
    assert second.elo > first.elo
    assert second.bear_elo == 1200.0 and first.bear_elo == 800.0
    assert first.bull_games == second.bull_games == 1


def test_draw_changes_no_elo_but_counts_the_game():
    first = StrategyRecord.seeded("a")
    second = StrategyRecord.seeded("b")
    outcome = apply_result(first, second, _metrics(3.0), _metrics(3.0), bear=False)

    assert outcome is Outcome.DRAW
    assert first.games == second.games == 2
    assert first.elo == second.elo == 1000.0
    assert first.bull_games == second.bull_games == 1
    assert abs(first.por - 1.5) < 1e-9
