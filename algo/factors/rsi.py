"""RSI 因子（输入为 Candle）。

单根 K 线的涨跌幅按 `(close − open)/open` 计；窗口内上涨（含平盘）K 线的涨幅按上涨根数
求平均为 avgGain，下跌 K 线跌幅的绝对值按下跌根数求平均为 avgLoss，`RSI = 100 − 100/(1 + avgGain/avgLoss)`。

- `RSIFactor`：每个窗口重新计算（非 Wilder）。
- `SmoothedRSIFactor`：首个窗口取均值作为种子，之后按 Wilder 平滑逐根递推。

任一侧为 0 时按极小正数处理，结果落在 [0, 100] 内且不会出现除零。
"""

from __future__ import annotations

from dataclasses import dataclass, field

from algo.factors.base import WindowFactor
from shared.models.models import Candle

_EPSILON = 1e-12


def candle_change(candle: Candle) -> float:
    if candle.open == 0:
        return 0.0
    return (candle.close - candle.open) / candle.open


def rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    avg_gain = max(avg_gain, _EPSILON)
    avg_loss = max(avg_loss, _EPSILON)
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


def _window_averages(values: tuple[Candle, ...]) -> tuple[float, float]:
    # 平盘 K 线计入上涨一侧；两侧各自按自身根数求平均
    ups = [x for x in map(candle_change, values) if x >= 0]
    downs = [-x for x in map(candle_change, values) if x < 0]
    gain = sum(ups) / len(ups) if ups else 0.0
    loss = sum(downs) / len(downs) if downs else 0.0
    return gain, loss


@dataclass
class RSIFactor(WindowFactor):
    """相对强弱指数（窗口均值版本）。"""

    period: int = 14
    name: str = "rsi"

    def reduce(self, values: tuple) -> float:
        return rsi_from_averages(*_window_averages(values))


@dataclass
class SmoothedRSIFactor(WindowFactor):
    """相对强弱指数（Wilder 平滑版本）。"""

    period: int = 14
    name: str = "smoothedrsi"
    _avg_gain: float | None = field(default=None, init=False, repr=False)
    _avg_loss: float = field(default=0.0, init=False, repr=False)

    def step(self, value: Candle) -> float | None:
        if self._avg_gain is None:
            if not self.push(value):
                return None
            self._avg_gain, self._avg_loss = _window_averages(tuple(self._window))
            return rsi_from_averages(self._avg_gain, self._avg_loss)

        change = candle_change(value)
        p = self.period
        self._avg_gain = (self._avg_gain * (p - 1) + max(change, 0.0)) / p
        self._avg_loss = (self._avg_loss * (p - 1) + max(-change, 0.0)) / p
        return rsi_from_averages(self._avg_gain, self._avg_loss)
