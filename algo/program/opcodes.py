"""操作码集合与操作数签名。

操作码分为四个互不相交的集合：
- SourceOp：每条流的第一条指令，选择源（原始 K 线或之前某条流的结果）；
- CandleOp：作用于 K 线流，产出数值流；
- PriceOp：作用于数值流，产出数值流；
- DecisionOp：产出决策（布尔）流。

线上格式（JSON）里操作码用小写字符串表示，各集合之间不重名。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from algo.streams.base import StreamKind


class SourceOp(str, Enum):
    CANDLES = "candles"
    STREAM = "stream"


class CandleOp(str, Enum):
    OPEN = "open"
    CLOSE = "close"
    HIGH = "high"
    LOW = "low"
    TYPICAL = "typical"
    GAIN = "gain"
    VOLUME = "vol"
    STOCH = "stoch"
    STOCHD = "stochd"
    STOCHSLOW = "stochslow"
    STOCHSLOWD = "stochslowd"
    RSI = "rsi"
    SRSI = "smoothedrsi"
    OBV = "obv"
    VWMA = "vwma"
    VWBB = "vwbb"
    MFI = "mfi"
    STOCHRSI = "stochrsi"
    VWMACDOF = "vwmacdof"
    VWMACD = "vwmacd"
    VWMACDSIGOF = "vwmacdsigof"
    VWMACDSIG = "vwmacdsig"


class PriceOp(str, Enum):
    SMA = "sma"
    EMA = "ema"
    BBAND = "bband"
    BBANDEMA = "bbandema"
    MACDOF = "macdof"
    MACD = "macd"
    MACDSIGOF = "macdsigof"
    MACDSIG = "macdsig"
    ROC = "roc"
    TSTOCH = "takestoch"
    INVERSE = "inverse"


class DecisionOp(str, Enum):
    CROSSOVER = "crossover"
    NEGCROSSOVER = "negativecrossover"
    GT = "greaterthan"
    LT = "lessthan"
    OR = "or"
    AND = "and"


Opcode = Union[SourceOp, CandleOp, PriceOp, DecisionOp]


class OperandKind(str, Enum):
    PERIOD = "period"  # 正整数
    NUMBER = "number"  # 任意有限实数
    FLAG = "flag"  # bool
    REF = "ref"  # 之前某条流的下标
    SMOOTHING = "smoothing"  # [0, 1]，0 表示使用默认 2/(p+1)


@dataclass(frozen=True)
class Operand:
    kind: OperandKind
    default: Any = None

    @property
    def required(self) -> bool:
        return self.default is None

    @property
    def mutable(self) -> bool:
        """进化时可以被 ±1 / 翻转的操作数。"""
        return self.kind is not OperandKind.REF


def _period(default: int | None = None) -> Operand:
    return Operand(OperandKind.PERIOD, default)


_REF = Operand(OperandKind.REF)
_FLAG = Operand(OperandKind.FLAG, True)
_THRESHOLD = Operand(OperandKind.NUMBER)
_DEVIATIONS = Operand(OperandKind.NUMBER, 2)
_SMOOTHING = Operand(OperandKind.SMOOTHING, 0)

SIGNATURES: dict[Opcode, tuple[Operand, ...]] = {
    SourceOp.CANDLES: (),
    SourceOp.STREAM: (_REF,),
    CandleOp.OPEN: (),
    CandleOp.CLOSE: (),
    CandleOp.HIGH: (),
    CandleOp.LOW: (),
    CandleOp.TYPICAL: (),
    CandleOp.GAIN: (),
    CandleOp.VOLUME: (),
    CandleOp.STOCH: (_period(14),),
    CandleOp.STOCHD: (_period(14),),
    CandleOp.STOCHSLOW: (_period(14), _period(3)),
    CandleOp.STOCHSLOWD: (_period(14), _period(3), _period(3)),
    CandleOp.RSI: (_period(14),),
    CandleOp.SRSI: (_period(14),),
    CandleOp.OBV: (),
    CandleOp.VWMA: (_period(14),),
    CandleOp.VWBB: (_FLAG, _period(20), _DEVIATIONS),
    CandleOp.MFI: (_period(14),),
    CandleOp.STOCHRSI: (_period(14),),
    CandleOp.VWMACDOF: (_period(12), _period(26)),
    CandleOp.VWMACD: (),
    CandleOp.VWMACDSIGOF: (_period(12), _period(26), _period(9)),
    CandleOp.VWMACDSIG: (),
    PriceOp.SMA: (_period(),),
    PriceOp.EMA: (_period(),),
    PriceOp.BBAND: (_FLAG, _period(20), _DEVIATIONS),
    PriceOp.BBANDEMA: (_FLAG, _period(20), _DEVIATIONS, _SMOOTHING),
    PriceOp.MACDOF: (_period(12), _period(26)),
    PriceOp.MACD: (),
    PriceOp.MACDSIGOF: (_period(12), _period(26), _period(9)),
    PriceOp.MACDSIG: (),
    PriceOp.ROC: (_period(12),),
    PriceOp.TSTOCH: (_period(14),),
    PriceOp.INVERSE: (),
    DecisionOp.CROSSOVER: (_REF,),
    DecisionOp.NEGCROSSOVER: (_REF,),
    DecisionOp.GT: (_THRESHOLD,),
    DecisionOp.LT: (_THRESHOLD,),
    DecisionOp.OR: (_REF,),
    DecisionOp.AND: (_REF,),
}

OPCODES: dict[str, Opcode] = {
    op.value: op for group in (SourceOp, CandleOp, PriceOp, DecisionOp) for op in group
}

_DECISION_INPUT = {
    DecisionOp.CROSSOVER: StreamKind.PRICE,
    DecisionOp.NEGCROSSOVER: StreamKind.PRICE,
    DecisionOp.GT: StreamKind.PRICE,
    DecisionOp.LT: StreamKind.PRICE,
    DecisionOp.OR: StreamKind.DECISION,
    DecisionOp.AND: StreamKind.DECISION,
}


def parse_opcode(name: Any) -> Opcode:
    if not isinstance(name, str) or name not in OPCODES:
        raise ValueError(f"unknown opcode: {name!r}")
    return OPCODES[name]


def input_kind(op: Opcode) -> StreamKind:
    """该操作码要求的当前流类型。"""
    if isinstance(op, CandleOp):
        return StreamKind.CANDLES
    if isinstance(op, PriceOp):
        return StreamKind.PRICE
    if isinstance(op, DecisionOp):
        return _DECISION_INPUT[op]
    raise ValueError(f"source opcode has no input kind: {op.value}")


def output_kind(op: Opcode) -> StreamKind:
    if isinstance(op, DecisionOp):
        return StreamKind.DECISION
    if isinstance(op, (CandleOp, PriceOp)):
        return StreamKind.PRICE
    raise ValueError(f"source opcode has no output kind: {op.value}")


def ref_kind(op: Opcode) -> StreamKind | None:
    """引用型操作数所指向的流必须具备的类型（源操作码 STREAM 不限制）。"""
    if isinstance(op, DecisionOp) and op not in (DecisionOp.GT, DecisionOp.LT):
        return _DECISION_INPUT[op]
    return None
