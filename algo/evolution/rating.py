"""对战评分（Elo 变体）。

一次对战后：
- 双方 games 自增，POR（profit over replacement）按对局数滚动平均；
- 胜方表现分 = 负方旧分 + shift，负方表现分 = 胜方旧分 − shift（两者之和等于双方旧分之和）；
- 新分 = (旧分·(games−1) + 表现分) / games；
- 总分无条件更新，牛/熊分按行情分类另外更新；平局不改任何 Elo。
"""

from __future__ import annotations

from enum import Enum

from shared.models.models import StrategyRecord, WalletMetrics


class Outcome(str, Enum):
    FIRST = "first"
    SECOND = "second"
    DRAW = "draw"


def performance_ratings(winner: float, loser: float, shift: float = 400.0) -> tuple[float, float]:
    """返回 (胜方表现分, 负方表现分)。"""
    return loser + shift, winner - shift


def blend(old: float, performance: float, games: int) -> float:
    """按对局数加权的滚动平均；games 已包含本局。"""
    return (old * (games - 1) + performance) / games


def _update_elo(winner: StrategyRecord, loser: StrategyRecord, shift: float) -> None:
    perf_w, perf_l = performance_ratings(winner.elo, loser.elo, shift)
    winner.elo = blend(winner.elo, perf_w, winner.games)
    loser.elo = blend(loser.elo, perf_l, loser.games)


def _update_bear(winner: StrategyRecord, loser: StrategyRecord, shift: float) -> None:
    winner.bear_games += 1
    loser.bear_games += 1
    perf_w, perf_l = performance_ratings(winner.bear_elo, loser.bear_elo, shift)
    winner.bear_elo = blend(winner.bear_elo, perf_w, winner.bear_games)
    loser.bear_elo = blend(loser.bear_elo, perf_l, loser.bear_games)


def _update_bull(winner: StrategyRecord, loser: StrategyRecord, shift: float) -> None:
    winner.bull_games += 1
    loser.bull_games += 1
    perf_w, perf_l = performance_ratings(winner.bull_elo, loser.bull_elo, shift)
    winner.bull_elo = blend(winner.bull_elo, perf_w, winner.bull_games)
    loser.bull_elo = blend(loser.bull_elo, perf_l, loser.bull_games)


def apply_result(
    first: StrategyRecord,
    second: StrategyRecord,
    first_metrics: WalletMetrics,
    second_metrics: WalletMetrics,
    bear: bool,
    shift: float = 400.0,
) -> Outcome:
    """就地更新两条记录并返回对战结果（按已实现收益比较）。"""
    for record, metrics in ((first, first_metrics), (second, second_metrics)):
        record.games += 1
        record.por = blend(record.por, metrics.profit_over_replacement, record.games)

    if first_metrics.profit == second_metrics.profit:
        return Outcome.DRAW

    if first_metrics.profit > second_metrics.profit:
        outcome, winner, loser = Outcome.FIRST, first, second
    else:
        outcome, winner, loser = Outcome.SECOND, second, first

    _update_elo(winner, loser, shift)
    if bear:
        _update_bear(winner, loser, shift)
    else:
        _update_bull(winner, loser, shift)
    return outcome
