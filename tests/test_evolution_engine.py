from __future__ import annotations

import random

import pytest

from algo.program.seeds import seed_programs
from algo.program.validation import is_valid, load_program
from engine.evolution_engine import EvolutionEngine
from market_data.replay import MarketReplay
from shared.config.schema import EvolutionConfig
from shared.models.models import StrategyRecord
from shared.state.sqlite_store import SqliteStrategyStore
from candle_factory import candles_from_closes, zigzag_closes


def _seeded_store() -> SqliteStrategyStore:
    store = SqliteStrategyStore(":memory:")
    for program in seed_programs().values():
        store.insert_new(StrategyRecord.seeded(program.encode()))
    return store


def _engine(store: SqliteStrategyStore, **cfg) -> EvolutionEngine:
    replay = MarketReplay(candles_from_closes(zigzag_closes(400), volume=4.0))
    params = {"generation_interval": 1000, "parallel": False}
    params.update(cfg)
    return EvolutionEngine(
        store,
        replay,
        window_candles=200,
        evolution_cfg=EvolutionConfig(**params),
        rng=random.Random(42),
    )


def test_step_requires_two_strategies():
    store = SqliteStrategyStore(":memory:")
    store.insert_new(StrategyRecord.seeded(next(iter(seed_programs().values())).encode()))
    with pytest.raises(ValueError, match="at least 2"):
        _engine(store).step()


def test_step_rates_two_distinct_strategies_and_saves_them():
    store = _seeded_store()
    engine = _engine(store)
    result = engine.step()

    assert result.first != result.second
    assert engine.iteration == 1
    first, second = store.get(result.first), store.get(result.second)
    assert first.games == second.games == 2
    assert result.bear == (result.first_metrics.expected_profit < 0)
    # 同一窗口：两边的买入持有基准一致
    assert result.first_metrics.expected_profit == result.second_metrics.expected_profit

    untouched = [r for r in store.iter_all() if r.algorithm not in (result.first, result.second)]
    assert all(r.games == 1 for r in untouched)


def test_invalid_programs_are_removed_on_load():
    store = _seeded_store()
    store.insert_new(StrategyRecord.seeded('{"streams": [], "result": {"entry": 0, "exit": 0}}'))
    store.insert_new(StrategyRecord.seeded("not json"))
    population = _engine(store).load_population()

    assert len(population) == len(seed_programs())
    assert store.count() == len(seed_programs())


def test_legacy_flag_programs_survive_load():
    store = SqliteStrategyStore(":memory:")
    legacy = (
        '{"streams":[[["candles"],["typical"]],[["stream",0],["bband",1]],[["stream",0],["bband",0,20,2]],'
        '[["stream",0],["crossover",1]],[["stream",0],["negativecrossover",2]]],"algResult":{"entry":4,"exit":3}}'
    )
    store.insert_new(StrategyRecord.seeded(legacy))
    store.insert_new(StrategyRecord.seeded(seed_programs()["sma_cross"].encode()))

    population = _engine(store).load_population()
    assert len(population) == 2
    assert store.get(legacy) is not None
    member = next(m for m in population if m.record.algorithm == legacy)
    assert member.program.streams[1][1].args == (True,)
    assert member.program.streams[2][1].args == (False, 20, 2)


def test_generation_boundary_adds_valid_children_and_prunes():
    store = _seeded_store()
    store.insert_new(StrategyRecord(
        seed_programs()["sma_cross"].encode().replace('"sma",20', '"sma",30'),
        elo=0.0,
        games=50,
        por=0.0,
    ))
    engine = _engine(
        store,
        generation_interval=1,
        mutation_probability=1.0,
        population_limit=len(seed_programs()),
        parallel=True,
    )
    engine.step()

    algorithms = [r.algorithm for r in store.iter_all()]
    assert len(algorithms) > len(seed_programs())
    assert all(is_valid(load_program(a)) for a in algorithms)
    # games > prune_min_games 且 POR 为 0 的个体在世代边界被清理
    assert not any('"sma",30' in a for a in algorithms)
    children = [r for r in store.iter_all() if r.games == 1 and r.algorithm not in {
        p.encode() for p in seed_programs().values()
    }]
    assert children
    assert all(c.elo == 1000.0 for c in children)


def test_run_summary_counts_battles():
    store = _seeded_store()
    result = _engine(store).run(max_iterations=3)

    summary = result.summary
    assert summary["battles"] == 3
    assert summary["first"] + summary["second"] + summary["draw"] == 3
    assert summary["population"] == store.count()
    assert sum(r.games - 1 for r in store.iter_all()) == 6
