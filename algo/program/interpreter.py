"""策略程序解释器：把 MachineAlgorithm 展开成一张挂在 K 线流上的流图。

按下标顺序处理各条流：解析源指令，再从左到右折叠其余指令，
每个操作码经分派表映射到恰好一个指标或决策操作。
结构错误在开始前由 `validate` 一次性拒绝，回放过程中不会出现。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from algo.program.opcodes import CandleOp, DecisionOp, PriceOp, SourceOp
from algo.program.program import Instruction, MachineAlgorithm
from algo.program.validation import validate
from algo.streams.base import Stream
from algo.streams.candles import CandleStream
from algo.streams.decisions import And, Crossover, DecisionStream, GreaterThan, LessThan, NegativeCrossover, Or
from algo.streams.price import PriceStream


@dataclass(frozen=True)
class AlgorithmResult:
    entry: DecisionStream
    exit: DecisionStream
    rank: PriceStream | None = None


CANDLE_DISPATCH: dict[CandleOp, Callable[[CandleStream, tuple], PriceStream]] = {
    CandleOp.OPEN: lambda s, a: s.open(),
    CandleOp.CLOSE: lambda s, a: s.close(),
    CandleOp.HIGH: lambda s, a: s.high(),
    CandleOp.LOW: lambda s, a: s.low(),
    CandleOp.TYPICAL: lambda s, a: s.typical(),
    CandleOp.GAIN: lambda s, a: s.gain(),
    CandleOp.VOLUME: lambda s, a: s.volume(),
    CandleOp.STOCH: lambda s, a: s.stoch(*a),
    CandleOp.STOCHD: lambda s, a: s.stoch_d(*a),
    CandleOp.STOCHSLOW: lambda s, a: s.stoch_slow(*a),
    CandleOp.STOCHSLOWD: lambda s, a: s.stoch_slow_d(*a),
    CandleOp.RSI: lambda s, a: s.rsi(*a),
    CandleOp.SRSI: lambda s, a: s.smoothed_rsi(*a),
    CandleOp.OBV: lambda s, a: s.obv(),
    CandleOp.VWMA: lambda s, a: s.vwma(*a),
    CandleOp.VWBB: lambda s, a: s.volume_weighted_bollinger_band(*a),
    CandleOp.MFI: lambda s, a: s.mfi(*a),
    CandleOp.STOCHRSI: lambda s, a: s.stoch_rsi(*a),
    CandleOp.VWMACDOF: lambda s, a: s.volume_weighted_macd_of(*a),
    CandleOp.VWMACD: lambda s, a: s.volume_weighted_macd(),
    CandleOp.VWMACDSIGOF: lambda s, a: s.volume_weighted_macd_signal_of(*a),
    CandleOp.VWMACDSIG: lambda s, a: s.volume_weighted_macd_signal(),
}

PRICE_DISPATCH: dict[PriceOp, Callable[[PriceStream, tuple], PriceStream]] = {
    PriceOp.SMA: lambda s, a: s.sma(*a),
    PriceOp.EMA: lambda s, a: s.ema(*a),
    PriceOp.BBAND: lambda s, a: s.bollinger_band(*a),
    PriceOp.BBANDEMA: lambda s, a: s.bollinger_band_ema(a[0], a[1], a[2], a[3] or None),
    PriceOp.MACDOF: lambda s, a: s.macd_of(*a),
    PriceOp.MACD: lambda s, a: s.macd(),
    PriceOp.MACDSIGOF: lambda s, a: s.macd_signal_of(*a),
    PriceOp.MACDSIG: lambda s, a: s.macd_signal(),
    PriceOp.ROC: lambda s, a: s.roc(*a),
    PriceOp.TSTOCH: lambda s, a: s.take_stoch(*a),
    PriceOp.INVERSE: lambda s, a: s.inverse(),
}

DECISION_DISPATCH: dict[DecisionOp, Callable[[Stream, tuple, Sequence[Stream]], DecisionStream]] = {
    DecisionOp.CROSSOVER: lambda s, a, done: Crossover(s, done[a[0]]),
    DecisionOp.NEGCROSSOVER: lambda s, a, done: NegativeCrossover(s, done[a[0]]),
    DecisionOp.GT: lambda s, a, done: GreaterThan(s, a[0]),
    DecisionOp.LT: lambda s, a, done: LessThan(s, a[0]),
    DecisionOp.OR: lambda s, a, done: Or(s, done[a[0]]),
    DecisionOp.AND: lambda s, a, done: And(s, done[a[0]]),
}


def full_args(ins: Instruction) -> tuple[Any, ...]:
    """补齐省略的尾部操作数。"""
    return ins.with_defaults().args


def _apply(current: Stream, ins: Instruction, done: Sequence[Stream]) -> Stream:
    args = full_args(ins)
    if isinstance(ins.op, CandleOp):
        return CANDLE_DISPATCH[ins.op](current, args)
    if isinstance(ins.op, PriceOp):
        return PRICE_DISPATCH[ins.op](current, args)
    return DECISION_DISPATCH[ins.op](current, args, done)


def interpret(program: MachineAlgorithm, candles: CandleStream) -> AlgorithmResult:
    """在给定 K 线流上构建程序的流图，返回 entry/exit/rank 三条流。"""
    validate(program)

    done: list[Stream] = []
    for stream in program.streams:
        source = stream[0]
        current: Stream = candles if source.op is SourceOp.CANDLES else done[source.args[0]]
        for ins in stream[1:]:
            current = _apply(current, ins, done)
        done.append(current)

    result = program.result
    return AlgorithmResult(
        entry=done[result.entry],
        exit=done[result.exit],
        rank=None if result.rank is None else done[result.rank],
    )
