from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

import main as app_main
from algo.program.seeds import SEEDS, sma_cross
from market_data.loader import candles_to_frame
from candle_factory import candles_from_closes, v_then_peak_closes

EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config" / "config.yml"


def _write_config(tmp_path: Path, **evolution: Any) -> Path:
    data_dir = tmp_path / "history"
    data_dir.mkdir(exist_ok=True)
    candles_to_frame(candles_from_closes(v_then_peak_closes())).to_csv(
        data_dir / "TEST-USD_3600.csv", index=False
    )
    lines = [
        "symbol: TEST-USD",
        "granularity: 3600",
        "data:",
        f"  data_dir: {data_dir}",
        "store:",
        f"  path: {tmp_path / 'state' / 'algs.sqlite3'}",
        "evolution:",
        "  window_days: 3",
        "  parallel: false",
        "  random_seed: 11",
    ]
    lines += [f"  {k}: {v}" for k, v in evolution.items()]
    cfg_path = tmp_path / "config.yml"
    cfg_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return cfg_path


def test_parse_args_config_before_or_after_subcommand():
    args = app_main.parse_args(["--config", "a.yml", "evolve", "--iterations", "5"])
    assert (args.config, args.task, args.iterations) == ("a.yml", "evolve", 5)
    args = app_main.parse_args(["backtest", "--config", "b.yml", "--program", "p.json"])
    assert (args.config, args.task, args.program) == ("b.yml", "backtest", "p.json")
    assert app_main.parse_args(["seed"]).config == "config/config.yml"


def test_parse_args_requires_task():
    with pytest.raises(SystemExit):
        app_main.parse_args([])


def test_main_evolve_delegates(monkeypatch):
    calls: list[dict[str, Any]] = []

    def _fake_run_evolve(cfg, iterations):
        calls.append({"symbol": cfg.symbol, "iterations": iterations})
        return {"ok": True}

    monkeypatch.setattr(app_main, "run_evolve", _fake_run_evolve)
    res = app_main.main(["--config", str(EXAMPLE_CONFIG), "evolve", "--iterations", "7"])
    assert res == {"ok": True}
    assert calls == [{"symbol": "ETH-USD", "iterations": 7}]


def test_validate_reports_valid_and_invalid_programs(tmp_path: Path):
    good = tmp_path / "good.json"
    good.write_text(sma_cross().encode(), encoding="utf-8")
    res = app_main.main(["validate", "--program", str(good)])
    assert res["valid"] is True
    assert res["streams"] == 4
    assert res["kinds"] == ["price", "price", "decision", "decision"]

    bad = tmp_path / "bad.json"
    bad.write_text('{"streams": [[["candles"], ["sma", 5]]], "result": {"entry": 0, "exit": 0}}', encoding="utf-8")
    res = app_main.main(["validate", "--program", str(bad)])
    assert res["valid"] is False
    assert "stream 0, instruction 1" in res["error"]


def test_seed_backtest_and_evolve_end_to_end(tmp_path: Path):
    cfg_path = _write_config(tmp_path)

    seeded = app_main.main(["--config", str(cfg_path), "seed"])
    assert seeded == {"inserted": len(SEEDS), "population": len(SEEDS)}
    # 重复写入不覆盖
    assert app_main.main(["seed", "--config", str(cfg_path)])["inserted"] == 0

    program = tmp_path / "sma.json"
    program.write_text(sma_cross().encode(), encoding="utf-8")
    summary = app_main.main(["backtest", "--config", str(cfg_path), "--program", str(program)])
    assert summary["symbol"] == "TEST-USD"
    assert summary["candles"] == len(v_then_peak_closes())
    assert summary["transaction_count"] == 2

    summary = app_main.main(["evolve", "--config", str(cfg_path), "--iterations", "2"])
    assert summary["battles"] == 2
    assert summary["population"] == len(SEEDS)


def test_backtest_condenses_finer_source_candles(tmp_path: Path):
    cfg_path = _write_config(tmp_path)
    text = cfg_path.read_text(encoding="utf-8")
    text = text.replace("granularity: 3600", "granularity: 86400")
    text = text.replace("data:\n", "data:\n  source_granularity: 3600\n")
    cfg_path.write_text(text, encoding="utf-8")

    program = tmp_path / "sma.json"
    program.write_text(sma_cross().encode(), encoding="utf-8")
    summary = app_main.main(["backtest", "--config", str(cfg_path), "--program", str(program)])
    # 111 根小时线只能凑出 4 个完整的日线桶
    assert summary["candles"] == len(v_then_peak_closes()) // 24
    assert summary["transaction_count"] == 0
