"""振荡类因子：ROC、随机指标 %K、数值序列随机归一化。"""

from __future__ import annotations

from dataclasses import dataclass

from algo.factors.base import WindowFactor


@dataclass
class ROCFactor(WindowFactor):
    """变化率：`100·(last − first)/first`，窗口为 period+1 个值。"""

    period: int = 12
    name: str = "roc"

    @property
    def capacity(self) -> int:
        return self.period + 1

    def reduce(self, values: tuple) -> float | None:
        first, last = float(values[0]), float(values[-1])
        if first == 0:
            return None
        return 100.0 * (last - first) / first


@dataclass
class StochasticFactor(WindowFactor):
    """随机指标 %K：`100·(close − 最低价)/(最高价 − 最低价)`，输入为 Candle。"""

    period: int = 14
    name: str = "stoch"

    def reduce(self, values: tuple) -> float | None:
        lowest = min(c.low for c in values)
        highest = max(c.high for c in values)
        if highest == lowest:
            return None
        return 100.0 * (values[-1].close - lowest) / (highest - lowest)


@dataclass
class StochNormalizeFactor(WindowFactor):
    """把任意数值序列按窗口极值归一化到 [0, 1]（用于随机 RSI）。"""

    period: int = 14
    name: str = "takestoch"

    def reduce(self, values: tuple) -> float | None:
        lo, hi = min(values), max(values)
        if hi == lo:
            return None
        return (float(values[-1]) - lo) / (hi - lo)
