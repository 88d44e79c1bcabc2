"""引擎基类。

回测（`BacktestEngine`）与进化循环（`EvolutionEngine`）都以 `run() -> EngineResult` 对外提供能力，
CLI 只依赖这一出口打印结果。
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class EngineResult:
    """summary 为可直接打印的标量字段，artifacts 放指标对象等结构化产物。"""

    summary: dict[str, Any]
    artifacts: dict[str, Any] | None = None

    def format_summary(self) -> str:
        parts = []
        for key, value in self.summary.items():
            if isinstance(value, float):
                parts.append(f"{key}={value:.4f}")
            else:
                parts.append(f"{key}={value}")
        return " ".join(parts)


class BaseEngine(ABC):
    @abstractmethod
    def run(self) -> EngineResult:
        raise NotImplementedError

    @staticmethod
    def log_result(logger: logging.Logger, result: EngineResult) -> None:
        logger.info("结果: %s", result.format_summary())
