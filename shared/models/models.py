"""核心数据结构：Candle/WalletMetrics/StrategyRecord。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence


@dataclass(frozen=True)
class Candle:
    """K 线数据（一个固定周期内的 OHLCV）。

    time 为该周期起点的 unix 秒。Candle 一经产生即不可变。
    """

    time: int
    low: float
    high: float
    open: float
    close: float
    volume: float

    @classmethod
    def from_tlhocv(cls, row: Sequence[float]) -> "Candle":
        """从 `[time, low, high, open, close, volume]` 数组构建（交易所 REST 常见格式）。"""
        if len(row) < 6:
            raise ValueError(f"tlhocv row needs 6 values, got {len(row)}")
        return cls(
            time=int(row[0]),
            low=float(row[1]),
            high=float(row[2]),
            open=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
        )

    @property
    def typical(self) -> float:
        return (self.high + self.low + self.close) / 3.0


@dataclass(frozen=True)
class WalletMetrics:
    """一次回测结束后的钱包指标（百分比口径）。"""

    profit: float
    expected_profit: float
    profit_over_replacement: float
    transaction_count: int
    fees: float
    net_worth: float


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StrategyRecord:
    """策略评分记录，以序列化后的策略程序文本为主键。

    只有进化引擎在一次完整的对战回测之后才会修改它。
    """

    algorithm: str
    elo: float = 1000.0
    bull_elo: float = 1000.0
    bear_elo: float = 1000.0
    games: int = 1
    bull_games: int = 1
    bear_games: int = 1
    por: float = 0.0  # profit over replacement 的滚动均值
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def seeded(cls, algorithm: str, elo: float = 1000.0) -> "StrategyRecord":
        """新个体：elo=1000、games=1。"""
        return cls(algorithm=algorithm, elo=elo, bull_elo=elo, bear_elo=elo)
