"""模拟钱包：全仓买卖、按比例收取手续费、挂单在后续价格满足条件时成交。

每次回测新建一个钱包，读取指标后即丢弃。手续费通过构造参数传入（来自 WalletConfig），
不同费率的回测可以同时存在。
"""

from __future__ import annotations

from dataclasses import dataclass

from broker.base import OrderType, Wallet
from shared.config.schema import WalletConfig
from shared.models.models import WalletMetrics


@dataclass(frozen=True)
class PendingOrder:
    type: OrderType
    price: float | None = None

    def triggered(self, price: float) -> bool:
        if self.type in (OrderType.MARKET_BUY, OrderType.MARKET_SELL):
            return True
        if self.type in (OrderType.LIMIT_BUY, OrderType.STOP_LOSS):
            return price <= self.price
        # LIMIT_SELL / STOP_ENTRY
        return price >= self.price

    @property
    def is_buy(self) -> bool:
        return self.type in (OrderType.MARKET_BUY, OrderType.LIMIT_BUY, OrderType.STOP_ENTRY)


class SimulationWallet(Wallet):
    """回测用钱包。

    Attributes
    ----------
    dollars / coins:
        二者至多一个非零（全仓进出）。
    starting_price / ending_price:
        回放窗口第一根与最后一根 K 线的价格，用于计算买入持有基准。
    fees:
        累计手续费（美元计）。
    pending:
        尚未触发的挂单。触发时资金或持仓不足的挂单直接作废；一笔成交后，
        同方向的其余挂单随之撤销（例如止损卖出后不再保留止盈卖单）。
        回测 broker 按收盘价直接调用 buy/sell，不经过挂单；挂单供直接使用钱包的调用方。
    """

    def __init__(self, starting_dollars: float = 1000.0, transaction_fee: float = 0.0035):
        self.starting_dollars = float(starting_dollars)
        self.transaction_fee = float(transaction_fee)
        self.dollars = self.starting_dollars
        self.coins = 0.0
        self.starting_price = 0.0
        self.ending_price = 0.0
        self.fees = 0.0
        self.transaction_count = 0
        self.pending: list[PendingOrder] = []
        self._started = False

    @classmethod
    def from_config(cls, cfg: WalletConfig) -> "SimulationWallet":
        return cls(starting_dollars=cfg.starting_dollars, transaction_fee=cfg.transaction_fee)

    def observe(self, price: float) -> None:
        if not self._started:
            self.starting_price = float(price)
            self._started = True
        self.ending_price = float(price)
        self._process_pending(float(price))

    def _process_pending(self, price: float) -> None:
        remaining = []
        filled_sides = set()
        for order in self.pending:
            if not order.triggered(price):
                remaining.append(order)
                continue
            filled = self.buy(price) if order.is_buy else self.sell(price)
            if filled:
                filled_sides.add(order.is_buy)
        # 全仓成交后同方向的其余挂单已无资金/持仓可用，一并撤销
        self.pending = [o for o in remaining if o.is_buy not in filled_sides]

    def buy(self, price: float) -> bool:
        if self.dollars == 0 or price <= 0:
            return False
        fee = self.transaction_fee * self.dollars
        self.coins = (self.dollars - fee) / price
        self.dollars = 0.0
        self.fees += fee
        self.transaction_count += 1
        return True

    def sell(self, price: float) -> bool:
        if self.coins == 0:
            return False
        fee = self.transaction_fee * price * self.coins
        self.dollars = self.coins * price - fee
        self.coins = 0.0
        self.fees += fee
        self.transaction_count += 1
        return True

    def _queue(self, order: PendingOrder) -> None:
        if order not in self.pending:
            self.pending.append(order)

    def market_buy(self) -> None:
        self._queue(PendingOrder(OrderType.MARKET_BUY))

    def market_sell(self) -> None:
        self._queue(PendingOrder(OrderType.MARKET_SELL))

    def limit_buy(self, price: float) -> None:
        self._queue(PendingOrder(OrderType.LIMIT_BUY, float(price)))

    def limit_sell(self, price: float) -> None:
        self._queue(PendingOrder(OrderType.LIMIT_SELL, float(price)))

    def stop_entry(self, price: float) -> None:
        self._queue(PendingOrder(OrderType.STOP_ENTRY, float(price)))

    def stop_loss(self, price: float) -> None:
        self._queue(PendingOrder(OrderType.STOP_LOSS, float(price)))

    @property
    def net_worth(self) -> float:
        """当前净值；持币时按结束价扣除一次卖出手续费折算。"""
        if self.dollars:
            return self.dollars
        return self.ending_price * self.coins * (1 - self.transaction_fee)

    @property
    def expected(self) -> float:
        """买入持有基准：起始价扣费买入、结束价扣费卖出后的美元价值。"""
        if self.starting_price <= 0:
            return self.starting_dollars
        fee = self.transaction_fee
        start = self.starting_dollars
        return self.ending_price * ((start - start * fee) / self.starting_price) * (1 - fee)

    @property
    def profit(self) -> float:
        return 100.0 * (self.net_worth - self.starting_dollars) / self.starting_dollars

    @property
    def expected_profit(self) -> float:
        return 100.0 * (self.expected - self.starting_dollars) / self.starting_dollars

    @property
    def profit_over_replacement(self) -> float:
        return self.profit - self.expected_profit

    def metrics(self) -> WalletMetrics:
        return WalletMetrics(
            profit=self.profit,
            expected_profit=self.expected_profit,
            profit_over_replacement=self.profit_over_replacement,
            transaction_count=self.transaction_count,
            fees=self.fees,
            net_worth=self.net_worth,
        )
