from __future__ import annotations

import math

import pytest

from algo.program.interpreter import CANDLE_DISPATCH, DECISION_DISPATCH, PRICE_DISPATCH, interpret
from algo.program.opcodes import CandleOp, DecisionOp, PriceOp
from algo.program.program import MachineAlgorithm, ProgramValidationError
from algo.program.seeds import seed_programs, sma_cross
from algo.streams.candles import CandleStream
from engine.backtest_runner import BacktestEngine, run_backtest, run_comparison
from market_data.replay import MarketReplay
from shared.config.schema import WalletConfig
from candle_factory import candles_from_closes, v_then_peak_closes, zigzag_closes


def test_dispatch_tables_cover_every_opcode():
    assert set(CANDLE_DISPATCH) == set(CandleOp)
    assert set(PRICE_DISPATCH) == set(PriceOp)
    assert set(DECISION_DISPATCH) == set(DecisionOp)


def test_interpret_rejects_invalid_program_before_replay():
    bad = MachineAlgorithm.from_dict({
        "streams": [[["candles"], ["close"], ["sma", 0]]],
        "result": {"entry": 0, "exit": 0},
    })
    candles = CandleStream()
    with pytest.raises(ProgramValidationError):
        interpret(bad, candles)
    assert candles.observer_count == 0


def test_sma_cross_emits_one_entry_and_one_exit_edge():
    candles = CandleStream()
    result = interpret(sma_cross(), candles)
    entries = result.entry.collect()
    exits = result.exit.collect()
    MarketReplay(candles_from_closes(v_then_peak_closes())).play(candles)

    assert entries == [True, False]
    assert exits == [False, True]
    assert result.entry.completed and result.exit.completed


def test_sma_cross_backtest_trades_once_each_way():
    closes = v_then_peak_closes()
    replay = MarketReplay(candles_from_closes(closes))
    metrics = run_backtest(sma_cross(), replay, WalletConfig(starting_dollars=1000, transaction_fee=0.0035))

    assert metrics.transaction_count == 2
    # 金叉在第 38 根（收盘 178）买入，死叉在第 78 根（收盘 202）卖出
    fee = 0.0035
    expected_worth = (1000 * (1 - fee) / 178.0) * 202.0 * (1 - fee)
    assert abs(metrics.net_worth - expected_worth) < 1e-6
    assert metrics.profit > 0
    assert metrics.expected_profit < 0
    assert abs(metrics.profit_over_replacement - (metrics.profit - metrics.expected_profit)) < 1e-9


def test_every_seed_runs_on_synthetic_market():
    replay = MarketReplay(candles_from_closes(zigzag_closes(400), volume=5.0))
    for name, program in seed_programs().items():
        metrics = run_backtest(program, replay)
        assert metrics.transaction_count >= 0, name
        for value in (metrics.profit, metrics.expected_profit, metrics.net_worth, metrics.fees):
            assert math.isfinite(value), name


def test_comparison_is_identical_serial_and_parallel():
    replay = MarketReplay(candles_from_closes(zigzag_closes(300)))
    programs = list(seed_programs().values())[:4]
    serial = run_comparison(programs, replay, parallel=False)
    parallel = run_comparison(programs, replay, parallel=True)
    assert serial == parallel


def test_backtest_engine_summary():
    replay = MarketReplay(candles_from_closes(v_then_peak_closes()), symbol="TEST-USD", granularity=3600)
    result = BacktestEngine(sma_cross(), replay).run()
    assert result.summary["symbol"] == "TEST-USD"
    assert result.summary["candles"] == len(replay)
    assert result.summary["transaction_count"] == 2
    assert "transaction_count=2" in result.format_summary()
