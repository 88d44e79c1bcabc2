"""单次回测与成对对比回测。

一次回测 = 新建 K 线流 → 解释策略程序 → 新建钱包与 broker → 回放 → 读取钱包指标。
流、因子、钱包都在本次调用内创建，多个回测可以在不同线程里共享同一个 MarketReplay。
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from algo.program.interpreter import interpret
from algo.program.program import MachineAlgorithm
from algo.streams.candles import CandleStream
from broker.backtest_broker import BacktestBroker
from broker.wallet import SimulationWallet
from engine.base_engine import BaseEngine, EngineResult
from market_data.replay import MarketReplay
from shared.config.schema import WalletConfig
from shared.models.models import WalletMetrics


def run_backtest(
    program: MachineAlgorithm,
    replay: MarketReplay,
    wallet_cfg: WalletConfig | None = None,
) -> WalletMetrics:
    """在一段回放上运行单个策略程序，返回钱包指标。

    Raises
    ------
    ProgramValidationError
        程序结构非法（在回放开始之前抛出）。
    """
    candles = CandleStream()
    alg = interpret(program, candles)
    wallet = SimulationWallet.from_config(wallet_cfg or WalletConfig())
    BacktestBroker(wallet, candles, alg)
    replay.play(candles)
    return wallet.metrics()


def run_comparison(
    programs: Sequence[MachineAlgorithm],
    replay: MarketReplay,
    wallet_cfg: WalletConfig | None = None,
    parallel: bool = True,
) -> list[WalletMetrics]:
    """在同一段回放上分别运行多个程序；parallel=True 时每个程序一个工作线程。"""
    if parallel and len(programs) > 1:
        with ThreadPoolExecutor(max_workers=len(programs)) as pool:
            futures = [pool.submit(run_backtest, p, replay, wallet_cfg) for p in programs]
            return [f.result() for f in futures]
    return [run_backtest(p, replay, wallet_cfg) for p in programs]


class BacktestEngine(BaseEngine):
    """CLI `backtest` 子命令使用的单程序回测。"""

    def __init__(self, program: MachineAlgorithm, replay: MarketReplay, wallet_cfg: WalletConfig | None = None):
        self.program = program
        self.replay = replay
        self.wallet_cfg = wallet_cfg

    def run(self) -> EngineResult:
        metrics = run_backtest(self.program, self.replay, self.wallet_cfg)
        summary = {
            "symbol": self.replay.symbol,
            "candles": len(self.replay),
            "profit": metrics.profit,
            "expected_profit": metrics.expected_profit,
            "profit_over_replacement": metrics.profit_over_replacement,
            "transaction_count": metrics.transaction_count,
            "fees": metrics.fees,
            "net_worth": metrics.net_worth,
        }
        return EngineResult(summary=summary, artifacts={"metrics": metrics})
