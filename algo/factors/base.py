"""增量因子（stateful transform）基础设施。

每个因子实现 `step(value) -> value | None`：消费一个上游值，产出 0 或 1 个下游值。
返回 None 表示“仍在预热”或“本次结果退化（分母为 0 等）”，下游不会收到 NaN/inf。

窗口类因子使用固定容量的滑动窗口（每次上游推送前进一格）；
需要无界历史的因子（如 OBV）改为折叠一个累计值。
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, Sequence

import numpy as np


class Factor(Protocol):
    """因子协议：`step(value) -> value | None`。"""

    name: str
    params: Mapping[str, Any]

    def step(self, value: Any) -> Any | None:
        ...


def check_period(name: str, period: int) -> int:
    if isinstance(period, bool) or not isinstance(period, (int, np.integer)):
        raise ValueError(f"{name} period must be an int, got {period!r}")
    if period <= 0:
        raise ValueError(f"{name} period must be > 0")
    return int(period)


def population_std(center: float, values: Sequence[float]) -> float:
    """围绕给定中心的总体标准差（ddof=0）。"""
    arr = np.asarray(values, dtype=float)
    return float(np.sqrt(np.mean((arr - center) ** 2)))


def band(upper: bool, center: float, deviations: float, sdev: float) -> float:
    return center + deviations * sdev if upper else center - deviations * sdev


def finite_or_none(value: float | None) -> float | None:
    if value is None or not math.isfinite(value):
        return None
    return float(value)


@dataclass
class WindowFactor:
    """滑动窗口因子基类：窗口填满前不输出。"""

    period: int
    name: str = "window"
    params: dict[str, Any] = field(default_factory=dict)
    _window: deque = field(init=False, repr=False)

    def __post_init__(self):
        self.period = check_period(self.name.upper(), self.period)
        self.params = {"period": self.period}
        self._window = deque(maxlen=self.capacity)

    @property
    def capacity(self) -> int:
        return self.period

    @property
    def ready(self) -> bool:
        return len(self._window) == self.capacity

    def push(self, value: Any) -> bool:
        self._window.append(value)
        return self.ready

    def step(self, value: Any) -> Any | None:
        if not self.push(value):
            return None
        return finite_or_none(self.reduce(tuple(self._window)))

    def reduce(self, values: tuple) -> float | None:
        raise NotImplementedError


@dataclass
class MapFactor:
    """无状态逐值映射（K 线字段提取、倒数等）；映射函数返回 None 时跳过本次输出。"""

    fn: Callable[[Any], float | None]
    name: str = "map"
    params: dict[str, Any] = field(default_factory=dict)

    def step(self, value: Any) -> float | None:
        return finite_or_none(self.fn(value))
