"""布林带因子（SMA / EMA / VWMA 三种中轨）。

单个因子只输出一条带（upper=True 上轨，False 下轨）；偏移 = deviations × 总体标准差。
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from algo.factors.base import WindowFactor, band, finite_or_none, population_std
from algo.factors.ema import EMAFactor
from algo.factors.ma import vwma


@dataclass
class BollingerFactor(WindowFactor):
    upper: bool = True
    period: int = 20
    deviations: float = 2.0
    name: str = "bband"

    def __post_init__(self):
        super().__post_init__()
        self.params.update({"upper": self.upper, "deviations": self.deviations})

    def reduce(self, values: tuple) -> float:
        center = float(np.mean(values))
        return band(self.upper, center, self.deviations, population_std(center, values))


@dataclass
class EMABollingerFactor(WindowFactor):
    """中轨为 EMA，标准差按窗口内各值相对 EMA 计算。"""

    upper: bool = True
    period: int = 20
    deviations: float = 2.0
    smoothing: float | None = None
    name: str = "bbandema"
    _ema: EMAFactor = field(init=False, repr=False)

    def __post_init__(self):
        super().__post_init__()
        self.params.update({"upper": self.upper, "deviations": self.deviations, "smoothing": self.smoothing})
        self._ema = EMAFactor(self.period, smoothing=self.smoothing)

    def step(self, value: float) -> float | None:
        center = self._ema.step(value)
        if not self.push(value) or center is None:
            return None
        sdev = population_std(center, tuple(self._window))
        return finite_or_none(band(self.upper, center, self.deviations, sdev))


@dataclass
class VWBollingerFactor(WindowFactor):
    """中轨为 VWMA，标准差按窗口内典型价相对 VWMA 计算（输入为 Candle）。"""

    upper: bool = True
    period: int = 20
    deviations: float = 2.0
    name: str = "vwbb"

    def __post_init__(self):
        super().__post_init__()
        self.params.update({"upper": self.upper, "deviations": self.deviations})

    def reduce(self, values: tuple) -> float | None:
        center = vwma(values)
        if center is None:
            return None
        sdev = population_std(center, [c.typical for c in values])
        return band(self.upper, center, self.deviations, sdev)
