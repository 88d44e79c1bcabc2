"""配置加载。

YAML -> `${VAR}` 展开 -> `MainConfig`（pydantic，禁止未知字段）。
配置文件所在目录及其上一级目录中的 .env/.env.local 会先被读入环境变量（已存在的不覆盖）。
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml

from shared.config.schema import MainConfig

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")
_ENV_FILES = (".env", ".env.local")


def _parse_env_file(env_path: Path) -> dict[str, str]:
    """解析 KEY=VALUE 行；忽略空行、注释和 `export ` 前缀。"""
    values: dict[str, str] = {}
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        if key:
            values[key] = value.strip('"').strip("'")
    return values


def _load_envs(cfg_path: Path) -> None:
    for directory in (cfg_path.parent, cfg_path.parent.parent):
        for name in _ENV_FILES:
            env_file = directory / name
            if not env_file.is_file():
                continue
            for key, value in _parse_env_file(env_file).items():
                os.environ.setdefault(key, value)


def _lookup_env(match: re.Match) -> str:
    name = match.group(1)
    try:
        return os.environ[name]
    except KeyError:
        raise ValueError(f"Missing environment variable: {name}") from None


def expand_env(value: Any) -> Any:
    """递归展开字符串、dict、list 中的 `${VAR}`；变量缺失时报错。"""
    if isinstance(value, str):
        return _ENV_PATTERN.sub(_lookup_env, value)
    if isinstance(value, dict):
        return {k: expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v) for v in value]
    return value


def load_config(path: str, load_env: bool = True, expand_env_vars: bool = True) -> MainConfig:
    """读取 YAML 配置并校验为 `MainConfig`。

    Parameters
    ----------
    path:
        配置文件路径。
    load_env:
        是否先读取 .env/.env.local。
    expand_env_vars:
        是否展开 `${VAR}` 占位符。

    Raises
    ------
    FileNotFoundError
        配置文件不存在。
    ValueError
        缺失环境变量、根节点不是映射，或字段校验失败（pydantic.ValidationError）。
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    if load_env:
        _load_envs(cfg_path)

    raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a mapping: {cfg_path}")

    if expand_env_vars:
        raw = expand_env(raw)
    return MainConfig.model_validate(raw)
