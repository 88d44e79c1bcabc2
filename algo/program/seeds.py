"""初始种群：经典手写策略的程序化表示。

`evolve` 之前用 `main.py seed` 把这些程序写入存储（elo=1000, games=1）。
"""

from __future__ import annotations

from typing import Callable

from algo.program.builder import ProgramBuilder
from algo.program.opcodes import CandleOp, DecisionOp, PriceOp
from algo.program.program import MachineAlgorithm


def cross(fast_period: int, slow_period: int) -> MachineAlgorithm:
    """收盘价 SMA 金叉入场、死叉离场。"""
    b = ProgramBuilder()
    fast = b.candles((CandleOp.CLOSE,), (PriceOp.SMA, fast_period))
    slow = b.candles((CandleOp.CLOSE,), (PriceOp.SMA, slow_period))
    golden = b.derive(fast, (DecisionOp.CROSSOVER, slow))
    death = b.derive(slow, (DecisionOp.CROSSOVER, fast))
    return b.build(golden, death)


def golden_and_death_cross() -> MachineAlgorithm:
    return cross(15, 50)


def sma_cross() -> MachineAlgorithm:
    return cross(5, 20)


def macd() -> MachineAlgorithm:
    b = ProgramBuilder()
    line = b.candles((CandleOp.TYPICAL,), (PriceOp.MACD,))
    signal = b.candles((CandleOp.TYPICAL,), (PriceOp.MACDSIG,))
    bull = b.derive(line, (DecisionOp.CROSSOVER, signal))
    bear = b.derive(signal, (DecisionOp.CROSSOVER, line))
    # 逆势：信号线上穿时入场
    return b.build(bear, bull)


def _band_strategy(indicator: CandleOp, lower: float, upper: float) -> MachineAlgorithm:
    """指标跌破 lower 入场，升破 upper 离场。"""
    b = ProgramBuilder()
    value = b.candles((indicator,))
    oversold = b.derive(value, (DecisionOp.LT, lower))
    overbought = b.derive(value, (DecisionOp.GT, upper))
    return b.build(oversold, overbought)


def rsi() -> MachineAlgorithm:
    return _band_strategy(CandleOp.RSI, 20, 75)


def mfi() -> MachineAlgorithm:
    return _band_strategy(CandleOp.MFI, 30, 90)


def slow_stochastic() -> MachineAlgorithm:
    return _band_strategy(CandleOp.STOCHSLOW, 20, 80)


def stochastic_rsi() -> MachineAlgorithm:
    b = ProgramBuilder()
    value = b.candles((CandleOp.STOCHRSI,))
    oversold = b.derive(value, (DecisionOp.LT, 0.2))
    overbought = b.derive(value, (DecisionOp.GT, 0.8))
    return b.build(oversold, overbought)


def bollinger_bands() -> MachineAlgorithm:
    b = ProgramBuilder()
    typical = b.candles((CandleOp.TYPICAL,))
    upper = b.derive(typical, (PriceOp.BBAND, True))
    lower = b.derive(typical, (PriceOp.BBAND, False))
    over_upper = b.derive(typical, (DecisionOp.CROSSOVER, upper))
    below_lower = b.derive(typical, (DecisionOp.NEGCROSSOVER, lower))
    return b.build(below_lower, over_upper)


def obv() -> MachineAlgorithm:
    b = ProgramBuilder()
    value = b.candles((CandleOp.OBV,))
    bull = b.derive(value, (DecisionOp.GT, 10000))
    bear = b.derive(value, (DecisionOp.LT, -10000))
    return b.build(bull, bear)


def volume_weighted_cross() -> MachineAlgorithm:
    b = ProgramBuilder()
    fast = b.candles((CandleOp.VWMA, 10))
    slow = b.candles((CandleOp.VWMA, 20))
    golden = b.derive(fast, (DecisionOp.CROSSOVER, slow))
    death = b.derive(slow, (DecisionOp.CROSSOVER, fast))
    return b.build(golden, death)


def volume_weighted_macd() -> MachineAlgorithm:
    b = ProgramBuilder()
    line = b.candles((CandleOp.VWMACD,))
    signal = b.candles((CandleOp.VWMACDSIG,))
    bull = b.derive(line, (DecisionOp.CROSSOVER, signal))
    bear = b.derive(signal, (DecisionOp.CROSSOVER, line))
    return b.build(bull, bear)


SEEDS: dict[str, Callable[[], MachineAlgorithm]] = {
    "golden_and_death_cross": golden_and_death_cross,
    "sma_cross": sma_cross,
    "macd": macd,
    "rsi": rsi,
    "bollinger_bands": bollinger_bands,
    "mfi": mfi,
    "obv": obv,
    "slow_stochastic": slow_stochastic,
    "volume_weighted_cross": volume_weighted_cross,
    "volume_weighted_macd": volume_weighted_macd,
    "stochastic_rsi": stochastic_rsi,
}


def seed_programs() -> dict[str, MachineAlgorithm]:
    return {name: factory() for name, factory in SEEDS.items()}
