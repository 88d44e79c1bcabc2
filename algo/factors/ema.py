"""EMA 因子。"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from algo.factors.base import WindowFactor


def smoothing_constant(period: int, smoothing: float | None = None) -> float:
    """平滑系数：显式给出且落在 (0, 1] 时使用，否则 2/(period+1)。"""
    if smoothing is not None and 0 < smoothing <= 1:
        return float(smoothing)
    return 2.0 / (period + 1)


@dataclass
class EMAFactor(WindowFactor):
    """指数移动平均。

    先缓冲 period 个值，用它们的 SMA 作为种子并输出；
    之后每个值按 `ema = α·value + (1−α)·ema_prev` 递推。
    """

    smoothing: float | None = None
    name: str = "ema"
    _ema: float | None = field(default=None, init=False, repr=False)

    def __post_init__(self):
        super().__post_init__()
        self.params["smoothing"] = self.smoothing

    @property
    def alpha(self) -> float:
        return smoothing_constant(self.period, self.smoothing)

    @property
    def value(self) -> float | None:
        return self._ema

    def step(self, value: float) -> float | None:
        if self._ema is None:
            if not self.push(value):
                return None
            self._ema = float(np.mean(self._window))
            return self._ema
        a = self.alpha
        self._ema = a * float(value) + (1 - a) * self._ema
        return self._ema
