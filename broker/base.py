"""钱包执行接口。

回测 broker 只通过这里的方法驱动钱包；实盘侧可以用同一组调用对接真实交易所下单接口。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class OrderType(Enum):
    """挂单类型。"""

    MARKET_BUY = "market-buy"
    MARKET_SELL = "market-sell"
    LIMIT_BUY = "limit-buy"
    LIMIT_SELL = "limit-sell"
    STOP_ENTRY = "stop-entry"
    STOP_LOSS = "stop-loss"


class Wallet(ABC):
    """全仓进出的钱包抽象。

    任意时刻要么全部持有美元，要么全部持有币；买卖在无可用资金/持仓时静默不执行。
    """

    @abstractmethod
    def observe(self, price: float) -> None:
        """推进一个行情价格：更新起止价并尝试成交挂单。"""

    @abstractmethod
    def buy(self, price: float) -> bool:
        """以给定价格全仓买入，返回是否成交。"""

    @abstractmethod
    def sell(self, price: float) -> bool:
        """以给定价格全仓卖出，返回是否成交。"""

    @abstractmethod
    def market_buy(self) -> None:
        """下一次行情价格到达时买入。"""

    @abstractmethod
    def market_sell(self) -> None:
        """下一次行情价格到达时卖出。"""

    @abstractmethod
    def limit_buy(self, price: float) -> None:
        """价格不高于 price 时买入。"""

    @abstractmethod
    def limit_sell(self, price: float) -> None:
        """价格不低于 price 时卖出。"""

    @abstractmethod
    def stop_entry(self, price: float) -> None:
        """价格向上突破 price 时买入。"""

    @abstractmethod
    def stop_loss(self, price: float) -> None:
        """价格跌破 price 时卖出。"""
