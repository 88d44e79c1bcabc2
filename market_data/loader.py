"""历史 K 线加载。

从 `<data_dir>/<symbol>_<granularity>.csv` 读取 K 线（列：time,low,high,open,close,volume，
time 为 unix 秒），按时间升序排列并去除重复时间戳。
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd

from shared.models.models import Candle
from shared.utils.logging import setup_logger

_LOGGER = setup_logger("market-data")

COLUMNS = ["time", "low", "high", "open", "close", "volume"]


def candles_from_frame(df: pd.DataFrame) -> List[Candle]:
    """DataFrame -> Candle 列表（排序 + 按 time 去重，保留最后一条）。"""
    missing = [c for c in COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"candle data missing columns: {missing}")
    df = df[COLUMNS].dropna()
    df = df.sort_values("time", kind="mergesort").drop_duplicates(subset="time", keep="last")
    return [Candle.from_tlhocv(row) for row in df.itertuples(index=False, name=None)]


def candles_to_frame(candles: List[Candle]) -> pd.DataFrame:
    return pd.DataFrame(
        [[c.time, c.low, c.high, c.open, c.close, c.volume] for c in candles],
        columns=COLUMNS,
    )


class HistoricalDataLoader:
    """历史 K 线数据目录。"""

    def __init__(self, data_dir: str = "dataset/history"):
        self.data_dir = Path(data_dir)

    def path_for(self, symbol: str, granularity: int) -> Path:
        return self.data_dir / f"{symbol}_{int(granularity)}.csv"

    def load(
        self,
        symbol: str,
        granularity: int,
        start: int | None = None,
        end: int | None = None,
    ) -> List[Candle]:
        """读取一个品种/粒度的全部 K 线，可选按 [start, end) 过滤（unix 秒）。"""
        path = self.path_for(symbol, granularity)
        if not path.exists():
            raise FileNotFoundError(f"Candle data not found: {path}")

        df = pd.read_csv(path)
        if start is not None:
            df = df[df["time"] >= start]
        if end is not None:
            df = df[df["time"] < end]
        candles = candles_from_frame(df)
        _LOGGER.info("加载 K 线 %s：%d 根（%s）", symbol, len(candles), path)
        return candles
