"""配置架构定义（Pydantic Schema）。

目标：
- 让配置成为“强类型 + 可演进”的边界协议；
- 启动阶段尽早失败，避免 typo/类型错误在长时间进化循环中“隐蔽爆炸”；
- 手续费、K 线粒度等参数通过配置对象传入 Wallet/Broker，而不是模块级常量，
  这样多个不同费率的回测可以同时存在。
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# 常见 K 线粒度（秒）
GRANULARITIES = (60, 300, 900, 3600, 21600, 86400)


class DataConfig(BaseModel):
    """历史 K 线数据目录。"""
    data_dir: str = "dataset/history"
    # 磁盘上 CSV 的粒度；比 granularity 细时加载后聚合，留空表示与 granularity 相同
    source_granularity: Optional[int] = None
    model_config = ConfigDict(extra="forbid")

    @field_validator("source_granularity")
    @classmethod
    def _check_source_granularity(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v not in GRANULARITIES:
            raise ValueError(f"source_granularity must be one of {GRANULARITIES}, got {v}")
        return v


class WalletConfig(BaseModel):
    """模拟钱包配置。"""
    starting_dollars: float = Field(default=1000.0, gt=0)
    transaction_fee: float = Field(default=0.0035, ge=0, lt=1)
    model_config = ConfigDict(extra="forbid")


class EvolutionConfig(BaseModel):
    """进化循环参数。"""
    population_limit: int = Field(default=1000, ge=2)
    # 每隔多少次对战生成一批新个体
    generation_interval: int = Field(default=100, ge=1)
    max_cohort: int = Field(default=50, ge=1)
    window_days: float = Field(default=90, gt=0)
    mutation_probability: float = Field(default=0.5, ge=0, le=1)
    seed_elo: float = 1000.0
    elo_shift: float = 400.0
    prune_min_games: int = Field(default=10, ge=0)
    parallel: bool = True
    random_seed: Optional[int] = None
    model_config = ConfigDict(extra="forbid")


class StoreConfig(BaseModel):
    """策略评分记录的 SQLite 存储。"""
    path: str = "dataset/state/strategies.sqlite3"
    model_config = ConfigDict(extra="forbid")


class MainConfig(BaseModel):
    """应用总配置。"""
    symbol: str = "ETH-USD"
    granularity: int = 3600
    log_level: str = "INFO"

    data: DataConfig = Field(default_factory=DataConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)
    evolution: EvolutionConfig = Field(default_factory=EvolutionConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @field_validator("granularity")
    @classmethod
    def _check_granularity(cls, v: int) -> int:
        if v not in GRANULARITIES:
            raise ValueError(f"granularity must be one of {GRANULARITIES}, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        lvl = v.upper()
        if lvl not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log_level: {v}")
        return lvl

    @property
    def window_candles(self) -> int:
        """一次回放窗口包含的 K 线数量。"""
        return max(1, int(self.evolution.window_days * 86400 // self.granularity))
