"""行情数据模块（market_data）。

该包聚合：
- 历史 K 线加载（CSV，pandas）
- 行情回放与随机窗口截取
- K 线粒度聚合
"""

from market_data.loader import HistoricalDataLoader
from market_data.replay import MarketReplay, condense_candles

__all__ = [
    "HistoricalDataLoader",
    "MarketReplay",
    "condense_candles",
]
