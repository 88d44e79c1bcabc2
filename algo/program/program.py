"""策略程序（MachineAlgorithm）的数据模型与 JSON 编解码。

线上/存储格式：
    {"streams": [[["candles"], ["close"], ["sma", 5]], ...], "result": {"entry": 2, "exit": 3}}

`streams[i]` 是一串指令，每条指令是 `[操作码, 操作数...]`；第一条是源指令
（`["candles"]` 或 `["stream", j]`，j < i）。`result` 选出入场/离场（以及可选的排序）流。
编码结果即存储主键，必须满足 `decode(encode(p)) == p`。
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

from algo.program.opcodes import Opcode, OperandKind, SIGNATURES, parse_opcode

Arg = Union[int, float, bool]


class ProgramValidationError(ValueError):
    """策略程序结构非法（配置错误，在进入种群/回测前拒绝）。"""


def _legacy_flags(op: Opcode, args: Iterable[Any]) -> tuple[Any, ...]:
    # 旧格式的布林带开关写成 0/1，读入时转为 bool，其余取值留给校验报错
    sig = SIGNATURES.get(op, ())
    out = []
    for k, value in enumerate(args):
        if (
            k < len(sig)
            and sig[k].kind is OperandKind.FLAG
            and type(value) is int
            and value in (0, 1)
        ):
            value = bool(value)
        out.append(value)
    return tuple(out)


@dataclass(frozen=True)
class Instruction:
    op: Opcode
    args: tuple[Arg, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))

    @classmethod
    def of(cls, op: Opcode, *args: Arg) -> "Instruction":
        return cls(op, args)

    @property
    def refs(self) -> tuple[int, ...]:
        """该指令引用的流下标。"""
        sig = SIGNATURES.get(self.op, ())
        return tuple(
            a for a, operand in zip(self.args, sig) if operand.kind is OperandKind.REF
        )

    def with_defaults(self) -> "Instruction":
        """补齐省略的尾部操作数（必填操作数缺失时不补）。"""
        sig = SIGNATURES.get(self.op, ())
        extra = tuple(o.default for o in sig[len(self.args):] if not o.required)
        return Instruction(self.op, self.args + extra)

    def replace_arg(self, index: int, value: Arg) -> "Instruction":
        args = list(self.args)
        args[index] = value
        return Instruction(self.op, tuple(args))

    def to_wire(self) -> list:
        return [self.op.value, *self.args]

    @classmethod
    def from_wire(cls, item: Any) -> "Instruction":
        if not isinstance(item, (list, tuple)) or not item:
            raise ProgramValidationError(f"instruction must be a non-empty list, got {item!r}")
        try:
            op = parse_opcode(item[0])
        except ValueError as exc:
            raise ProgramValidationError(str(exc)) from exc
        return cls(op, _legacy_flags(op, item[1:]))


@dataclass(frozen=True)
class AlgResult:
    """结果选择：entry/exit 为决策流下标，rank 为可选的数值流下标。"""

    entry: int
    exit: int
    rank: int | None = None

    def to_dict(self) -> dict[str, int]:
        out = {"entry": self.entry, "exit": self.exit}
        if self.rank is not None:
            out["rank"] = self.rank
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "AlgResult":
        if not isinstance(data, Mapping):
            raise ProgramValidationError("result must be an object")
        missing = [k for k in ("entry", "exit") if k not in data]
        if missing:
            raise ProgramValidationError(f"result missing keys: {missing}")
        return cls(entry=data["entry"], exit=data["exit"], rank=data.get("rank"))


@dataclass(frozen=True)
class MachineAlgorithm:
    """不可变的策略程序。"""

    streams: tuple[tuple[Instruction, ...], ...]
    result: AlgResult

    def __post_init__(self):
        object.__setattr__(self, "streams", tuple(tuple(s) for s in self.streams))

    @classmethod
    def from_streams(cls, streams: Iterable[Iterable[Instruction]], entry: int, exit: int, rank: int | None = None):
        return cls(tuple(tuple(s) for s in streams), AlgResult(entry, exit, rank))

    def to_dict(self) -> dict[str, Any]:
        return {
            "streams": [[ins.to_wire() for ins in stream] for stream in self.streams],
            "result": self.result.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MachineAlgorithm":
        if not isinstance(data, Mapping):
            raise ProgramValidationError("program must be a JSON object")
        raw_streams = data.get("streams")
        if not isinstance(raw_streams, list):
            raise ProgramValidationError("program.streams must be a list")
        # 兼容旧字段名 algResult
        raw_result = data.get("result", data.get("algResult"))
        if raw_result is None:
            raise ProgramValidationError("program.result is missing")

        streams = []
        for i, raw in enumerate(raw_streams):
            if not isinstance(raw, list):
                raise ProgramValidationError(f"stream {i} must be a list of instructions")
            streams.append(tuple(Instruction.from_wire(item) for item in raw))
        return cls(tuple(streams), AlgResult.from_dict(raw_result))

    def encode(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def decode(cls, text: str) -> "MachineAlgorithm":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ProgramValidationError(f"program is not valid JSON: {exc}") from exc
        return cls.from_dict(data)


def encode(program: MachineAlgorithm) -> str:
    return program.encode()


def decode(text: str) -> MachineAlgorithm:
    return MachineAlgorithm.decode(text)
