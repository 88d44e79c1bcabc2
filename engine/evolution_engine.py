"""进化引擎：种群对战、评分与世代更替。

每次 `step()`：
1. 按 elo、bear_elo、bull_elo 降序读取前 population_limit 条记录（加载时非法的程序直接删除）；
2. 每 generation_interval 次迭代，从前 min(len/2, max_cohort) 名中生成一批子代
   （以 mutation_probability 的概率变异，否则与随机个体交配），子代以 elo=1000、games=1 入库；
3. 随机取两个不同的个体；
4. 截取一段共享的回放窗口，分别回测（可并行）；
5. 买入持有基准收益为负记为熊市，否则为牛市；
6. 更新评分并写回两条记录；
7. 在世代边界删除 games > prune_min_games 且 POR 均值为 0 的个体。

评分的读取、更新、写回都在当前线程串行完成，只有两次回测本身可能并行。
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from algo.evolution.operators import mate, mutate
from algo.evolution.rating import Outcome, apply_result
from algo.program.program import MachineAlgorithm, ProgramValidationError
from algo.program.validation import load_program
from engine.backtest_runner import run_comparison
from engine.base_engine import BaseEngine, EngineResult
from market_data.replay import MarketReplay
from shared.config.schema import EvolutionConfig, WalletConfig
from shared.models.models import StrategyRecord, WalletMetrics
from shared.state.sqlite_store import SqliteStrategyStore
from shared.utils.logging import setup_logger

_LOGGER = setup_logger("evolution")


@dataclass(frozen=True)
class Member:
    record: StrategyRecord
    program: MachineAlgorithm


@dataclass(frozen=True)
class BattleResult:
    first: str
    second: str
    outcome: Outcome
    bear: bool
    first_metrics: WalletMetrics
    second_metrics: WalletMetrics


class EvolutionEngine(BaseEngine):
    def __init__(
        self,
        store: SqliteStrategyStore,
        replay: MarketReplay,
        window_candles: int,
        evolution_cfg: EvolutionConfig | None = None,
        wallet_cfg: WalletConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.replay = replay
        self.window_candles = int(window_candles)
        self.cfg = evolution_cfg or EvolutionConfig()
        self.wallet_cfg = wallet_cfg or WalletConfig()
        self.rng = rng or random.Random(self.cfg.random_seed)
        self.iteration = 0

    def load_population(self) -> list[Member]:
        population: list[Member] = []
        for record in self.store.find_all(self.cfg.population_limit):
            try:
                program = load_program(record.algorithm)
            except ProgramValidationError as exc:
                _LOGGER.warning("删除非法策略程序 %s: %s", record.algorithm, exc)
                self.store.delete(record.algorithm)
                continue
            population.append(Member(record, program))
        return population

    def make_generation(self, population: list[Member]) -> int:
        """从排名靠前的一半（至多 max_cohort 个）生成子代，返回新入库数量。"""
        size = min(len(population) // 2, self.cfg.max_cohort)
        created = 0
        for parent in population[:size]:
            if self.rng.random() < self.cfg.mutation_probability:
                child = mutate(parent.program, self.rng)
                if child is None:
                    continue
            else:
                partner = self.rng.choice(population)
                try:
                    child = mate(parent.program, partner.program, self.rng)
                except ProgramValidationError as exc:
                    _LOGGER.warning("交配产生非法程序，已丢弃: %s", exc)
                    continue
            if self.store.insert_new(StrategyRecord.seeded(child.encode(), self.cfg.seed_elo)):
                created += 1
        _LOGGER.info("生成新一代: 父代 %d 个，新增子代 %d 个", size, created)
        return created

    def prune(self) -> int:
        removed = self.store.delete_where(games_gt=self.cfg.prune_min_games, por_eq=0.0)
        if removed:
            _LOGGER.info("清理与买入持有无差别的策略 %d 个", removed)
        return removed

    def step(self) -> BattleResult:
        population = self.load_population()
        if len(population) < 2:
            raise ValueError("population needs at least 2 strategies; run `seed` first")

        self.iteration += 1
        boundary = self.iteration % self.cfg.generation_interval == 0
        if boundary:
            self.make_generation(population)

        pool = list(population)
        first = pool.pop(self.rng.randrange(len(pool)))
        second = pool[self.rng.randrange(len(pool))]

        window = self.replay.window(self.window_candles, self.rng)
        first_metrics, second_metrics = run_comparison(
            [first.program, second.program], window, self.wallet_cfg, parallel=self.cfg.parallel
        )

        bear = first_metrics.expected_profit < 0
        if bear:
            _LOGGER.info("熊市窗口，买入持有收益 %.4f%%", first_metrics.expected_profit)
        else:
            _LOGGER.info("牛市窗口，买入持有收益 %.4f%%", first_metrics.expected_profit)

        outcome = apply_result(
            first.record, second.record, first_metrics, second_metrics, bear, shift=self.cfg.elo_shift
        )
        if outcome is Outcome.DRAW:
            _LOGGER.info("平局，POR %.4f", first_metrics.profit_over_replacement)

        self.store.save(first.record)
        self.store.save(second.record)

        if boundary:
            self.prune()

        return BattleResult(
            first=first.record.algorithm,
            second=second.record.algorithm,
            outcome=outcome,
            bear=bear,
            first_metrics=first_metrics,
            second_metrics=second_metrics,
        )

    def run(self, max_iterations: int | None = None) -> EngineResult:
        """循环对战；max_iterations 为 None 时一直运行直到被外部中断。"""
        battles = 0
        outcomes = {o.value: 0 for o in Outcome}
        while max_iterations is None or battles < max_iterations:
            result = self.step()
            battles += 1
            outcomes[result.outcome.value] += 1
        return EngineResult(
            summary={"battles": battles, "population": self.store.count(), **outcomes},
        )
