"""MACD 因子。

快慢两条均线由同一个因子实例持有，同一次输入同时推进两者，
两者都就绪时输出差值，因此快慢两侧的值始终按同一根输入对齐。
信号线在流层面通过对 MACD 再做一次 EMA 得到。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from algo.factors.base import check_period
from algo.factors.ema import EMAFactor
from algo.factors.ma import VWMAFactor


@dataclass
class MACDFactor:
    """EMA(fast) − EMA(slow)。"""

    fast: int = 12
    slow: int = 26
    name: str = "macd"
    params: dict[str, Any] = field(default_factory=dict)
    _fast: Any = field(init=False, repr=False)
    _slow: Any = field(init=False, repr=False)

    def __post_init__(self):
        self.fast = check_period(self.name.upper(), self.fast)
        self.slow = check_period(self.name.upper(), self.slow)
        self.params = {"fast": self.fast, "slow": self.slow}
        self._fast, self._slow = self._make_legs()

    def _make_legs(self):
        return EMAFactor(self.fast), EMAFactor(self.slow)

    def step(self, value: Any) -> float | None:
        a = self._fast.step(value)
        b = self._slow.step(value)
        if a is None or b is None:
            return None
        return a - b


@dataclass
class VWMACDFactor(MACDFactor):
    """VWMA(fast) − VWMA(slow)，输入为 Candle。"""

    name: str = "vwmacd"

    def _make_legs(self):
        return VWMAFactor(self.fast), VWMAFactor(self.slow)
