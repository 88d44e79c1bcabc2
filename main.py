"""策略进化框架统一命令行入口。

该模块提供单一入口 `main.py`，通过子命令驱动不同任务：

- `seed`：把内置的经典策略程序写入种群存储。
- `evolve`：运行进化循环（对战、评分、世代更替）。
- `backtest`：在历史数据上回测单个策略程序文件。
- `validate`：校验策略程序文件的结构。
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from algo.program.program import ProgramValidationError
from algo.program.seeds import seed_programs
from algo.program.validation import load_program, stream_kinds
from engine.backtest_runner import BacktestEngine
from engine.evolution_engine import EvolutionEngine
from market_data.loader import HistoricalDataLoader
from market_data.replay import MarketReplay, condense_candles
from shared.config.config_loader import load_config
from shared.config.schema import MainConfig
from shared.models.models import StrategyRecord
from shared.state.sqlite_store import SqliteStrategyStore
from shared.utils.logging import set_level, setup_logger

_LOGGER = setup_logger("cli")


@dataclass
class CliArgs:
    """命令行参数结构。

    config: 配置文件路径
    task: 要运行的任务类型 (seed/evolve/backtest/validate)
    """
    config: str
    task: str
    iterations: int | None = None  # evolve：对战次数上限，None 表示一直运行
    program: str | None = None     # backtest/validate：策略程序 JSON 文件


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="evolution", description="策略进化框架统一入口")

    def _add_config_arg(p: argparse.ArgumentParser, *, default: Any) -> None:
        p.add_argument(
            "--config",
            default=default,
            help="配置文件路径 (默认: config/config.yml)",
        )

    # 允许 `python main.py --config ... evolve`（全局）与 `python main.py evolve --config ...`（子命令）
    _add_config_arg(parser, default="config/config.yml")

    sub = parser.add_subparsers(dest="task")

    p_seed = sub.add_parser("seed", help="写入内置的初始策略")
    _add_config_arg(p_seed, default=argparse.SUPPRESS)

    p_evolve = sub.add_parser("evolve", help="运行进化循环")
    _add_config_arg(p_evolve, default=argparse.SUPPRESS)
    p_evolve.add_argument("--iterations", type=int, default=None, help="对战次数上限（默认一直运行）")

    p_backtest = sub.add_parser("backtest", help="回测单个策略程序")
    _add_config_arg(p_backtest, default=argparse.SUPPRESS)
    p_backtest.add_argument("--program", required=True, help="策略程序 JSON 文件")

    p_validate = sub.add_parser("validate", help="校验策略程序")
    _add_config_arg(p_validate, default=argparse.SUPPRESS)
    p_validate.add_argument("--program", required=True, help="策略程序 JSON 文件")

    return parser


def parse_args(argv: list[str] | None = None) -> CliArgs:
    parser = build_parser()
    ns = parser.parse_args(argv)
    if not ns.task:
        parser.error("a task is required: seed / evolve / backtest / validate")
    return CliArgs(
        config=str(getattr(ns, "config", "config/config.yml")),
        task=ns.task,
        iterations=getattr(ns, "iterations", None),
        program=getattr(ns, "program", None),
    )


def _load_replay(cfg: MainConfig) -> MarketReplay:
    loader = HistoricalDataLoader(cfg.data.data_dir)
    source = cfg.data.source_granularity or cfg.granularity
    candles = loader.load(cfg.symbol, source)
    if source != cfg.granularity:
        candles = condense_candles(candles, source, cfg.granularity)
        _LOGGER.info("聚合 K 线 %ds -> %ds：%d 根", source, cfg.granularity, len(candles))
    return MarketReplay(candles, symbol=cfg.symbol, granularity=cfg.granularity)


def run_seed(cfg: MainConfig) -> dict[str, Any]:
    inserted = 0
    with SqliteStrategyStore(cfg.store.path) as store:
        for name, program in seed_programs().items():
            if store.insert_new(StrategyRecord.seeded(program.encode(), cfg.evolution.seed_elo)):
                inserted += 1
                _LOGGER.info("写入初始策略 %s", name)
        population = store.count()
    return {"inserted": inserted, "population": population}


def run_evolve(cfg: MainConfig, iterations: int | None) -> dict[str, Any]:
    replay = _load_replay(cfg)
    with SqliteStrategyStore(cfg.store.path) as store:
        engine = EvolutionEngine(
            store,
            replay,
            window_candles=cfg.window_candles,
            evolution_cfg=cfg.evolution,
            wallet_cfg=cfg.wallet,
        )
        result = engine.run(max_iterations=iterations)
    engine.log_result(_LOGGER, result)
    return result.summary


def run_backtest_file(cfg: MainConfig, program_path: str) -> dict[str, Any]:
    program = load_program(Path(program_path).read_text(encoding="utf-8"))
    engine = BacktestEngine(program, _load_replay(cfg), cfg.wallet)
    result = engine.run()
    engine.log_result(_LOGGER, result)
    return result.summary


def run_validate(program_path: str) -> dict[str, Any]:
    text = Path(program_path).read_text(encoding="utf-8")
    try:
        program = load_program(text)
    except ProgramValidationError as exc:
        _LOGGER.error("策略程序非法: %s", exc)
        return {"valid": False, "error": str(exc)}
    kinds = stream_kinds(program)
    return {
        "valid": True,
        "streams": len(program.streams),
        "kinds": [k.value for k in kinds],
        "encoded": program.encode(),
    }


def main(argv: list[str] | None = None) -> Any:
    """程序主入口，返回对应子命令的 summary dict。"""
    args = parse_args(argv)

    if args.task == "validate":
        return run_validate(str(args.program))

    cfg = load_config(args.config)
    set_level(cfg.log_level, "cli", "evolution", "market-data")

    if args.task == "seed":
        return run_seed(cfg)
    if args.task == "evolve":
        return run_evolve(cfg, args.iterations)
    if args.task == "backtest":
        return run_backtest_file(cfg, str(args.program))

    raise ValueError(f"Unknown task: {args.task}")


if __name__ == "__main__":
    main()
