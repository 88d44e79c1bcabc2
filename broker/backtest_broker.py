"""回测专用 Broker：把策略程序的 entry/exit 流接到钱包上。"""

from __future__ import annotations

from algo.program.interpreter import AlgorithmResult
from algo.streams.base import Latest
from algo.streams.candles import CandleStream
from broker.base import Wallet
from shared.models.models import Candle


class BacktestBroker:
    """逐根 K 线驱动钱包。

    先订阅 entry/exit（记录最近值），最后订阅 K 线流：同一根 K 线在整条派生链与决策边沿
    都推送完之后才轮到 broker 处理。每根 K 线：
    1. 钱包记录价格（首根为起始价，每根刷新结束价）并尝试成交挂单；
    2. entry/exit 都已有值时：二者相等不动作，entry 为真全仓买入，exit 为真全仓卖出。

    rank 流在单品种回放中不参与决策。
    """

    def __init__(self, wallet: Wallet, candles: CandleStream, alg: AlgorithmResult):
        self.wallet = wallet
        self.completed = False
        self._entry = Latest(alg.entry)
        self._exit = Latest(alg.exit)
        self._candles = candles.subscribe(self._on_candle, self._on_complete)

    def _on_candle(self, candle: Candle) -> None:
        price = candle.close
        self.wallet.observe(price)
        if not (self._entry.has_value and self._exit.has_value):
            return
        entry, exit_ = self._entry.value, self._exit.value
        if entry == exit_:
            return
        if entry:
            self.wallet.buy(price)
        elif exit_:
            self.wallet.sell(price)

    def _on_complete(self) -> None:
        self.completed = True
        for latest in (self._entry, self._exit):
            if latest.subscription is not None:
                latest.subscription.unsubscribe()
