"""行情回放。

`MarketReplay` 持有一段不可变的 K 线序列（严格按时间递增），
`play(stream)` 依次推送全部 K 线后 complete。多个回测可以共享同一个回放对象：
K 线元组只读，窗口缓冲/钱包等可变状态都在各自的流与 broker 中。
"""

from __future__ import annotations

import random
from typing import Sequence

from algo.streams.candles import CandleStream
from market_data.loader import candles_to_frame
from shared.models.models import Candle


class MarketReplay:
    def __init__(self, candles: Sequence[Candle], symbol: str = "", granularity: int | None = None):
        self.candles: tuple[Candle, ...] = tuple(candles)
        self.symbol = symbol
        self.granularity = granularity
        for prev, cur in zip(self.candles, self.candles[1:]):
            if cur.time <= prev.time:
                raise ValueError(f"candles must be strictly increasing in time: {prev.time} -> {cur.time}")

    def __len__(self) -> int:
        return len(self.candles)

    def play(self, stream: CandleStream) -> int:
        """推送全部 K 线并 complete，返回推送数量。"""
        for candle in self.candles:
            stream.emit(candle)
        stream.complete()
        return len(self.candles)

    def window(self, length: int, rng: random.Random | None = None) -> "MarketReplay":
        """随机截取一段连续的 length 根 K 线；不足 length 时返回整段。"""
        if length <= 0:
            raise ValueError("window length must be > 0")
        if length >= len(self.candles):
            return self
        rng = rng or random.Random()
        start = rng.randint(0, len(self.candles) - length)
        return MarketReplay(self.candles[start:start + length], self.symbol, self.granularity)


def condense_candles(candles: Sequence[Candle], source: int, target: int) -> list[Candle]:
    """把细粒度 K 线聚合成粗粒度 K 线（如 1h -> 1d）。

    按 target 边界对齐分桶，只保留包含完整 target/source 根的桶。
    """
    if source <= 0 or target < source or target % source:
        raise ValueError(f"cannot condense granularity {source} into {target}")
    if not candles:
        return []

    ratio = target // source
    df = candles_to_frame(list(candles))
    df["bucket"] = df["time"] // target * target
    grouped = df.groupby("bucket", sort=True).agg(
        low=("low", "min"),
        high=("high", "max"),
        open=("open", "first"),
        close=("close", "last"),
        volume=("volume", "sum"),
        count=("time", "size"),
    )
    grouped = grouped[grouped["count"] == ratio]
    return [
        Candle(
            time=int(bucket),
            low=float(row["low"]),
            high=float(row["high"]),
            open=float(row["open"]),
            close=float(row["close"]),
            volume=float(row["volume"]),
        )
        for bucket, row in grouped.iterrows()
    ]

