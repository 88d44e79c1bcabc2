"""成交量类因子：OBV（折叠）与 MFI（窗口）。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from algo.factors.base import WindowFactor
from shared.models.models import Candle


@dataclass
class OBVFactor:
    """能量潮：收阳加成交量，收阴减成交量，平盘不变；无预热，每根 K 线都输出。"""

    name: str = "obv"
    params: dict[str, Any] = field(default_factory=dict)
    total: float = field(default=0.0, init=False)

    def step(self, value: Candle) -> float:
        if value.close > value.open:
            self.total += value.volume
        elif value.close < value.open:
            self.total -= value.volume
        return self.total


@dataclass
class MFIFactor(WindowFactor):
    """资金流量指数，窗口为 period+1 根 K 线。

    每一步的典型价高于上一步时计入正向资金流，否则计入负向资金流；
    任一侧为 0 时按 1 处理。
    """

    period: int = 14
    name: str = "mfi"

    @property
    def capacity(self) -> int:
        return self.period + 1

    def reduce(self, values: tuple) -> float:
        positive = 0.0
        negative = 0.0
        last_typical = values[0].typical
        for candle in values[1:]:
            typical = candle.typical
            flow = typical * candle.volume
            if typical > last_typical:
                positive += flow
            else:
                negative += flow
            last_typical = typical

        positive = positive or 1.0
        negative = negative or 1.0
        return 100.0 - 100.0 / (1.0 + positive / negative)
