"""均线类因子：SMA / VWMA。"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from algo.factors.base import WindowFactor
from shared.models.models import Candle


@dataclass
class SMAFactor(WindowFactor):
    """简单移动平均（最近 period 个值的算术平均）。"""

    name: str = "sma"

    def reduce(self, values: tuple) -> float:
        return float(np.mean(values))


def vwma(candles: tuple[Candle, ...]) -> float | None:
    """典型价按成交量加权的均值；窗口总成交量为 0 时返回 None。"""
    volumes = np.array([c.volume for c in candles], dtype=float)
    total = float(volumes.sum())
    if total == 0:
        return None
    typical = np.array([c.typical for c in candles], dtype=float)
    return float((typical * volumes).sum() / total)


@dataclass
class VWMAFactor(WindowFactor):
    """成交量加权移动平均（输入为 Candle）。"""

    period: int = 14
    name: str = "vwma"

    def reduce(self, values: tuple) -> float | None:
        return vwma(values)
