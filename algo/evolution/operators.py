"""遗传算子：参数变异与交配。

两个算子都只产出通过 `validate` 的程序：
- 变异只改动变换指令的数值/布尔操作数，源指令与流引用保持不变；
- 交配把 B 的所有流引用与结果下标整体平移 len(A.streams)，再追加两条组合流，
  因此新程序里的引用依旧只指向更早的流。
"""

from __future__ import annotations

import random
from typing import Sequence

from algo.program.opcodes import DecisionOp, OperandKind, SIGNATURES, SourceOp
from algo.program.program import AlgResult, Instruction, MachineAlgorithm
from algo.program.validation import is_valid, validate

COMBINATORS = (DecisionOp.AND, DecisionOp.OR)


def _neighbours(kind: OperandKind, value) -> tuple:
    if kind is OperandKind.FLAG:
        return (not value,)
    return (value + 1, value - 1)


def _replace(program: MachineAlgorithm, i: int, j: int, ins: Instruction) -> MachineAlgorithm:
    stream = program.streams[i]
    new_stream = stream[:j] + (ins,) + stream[j + 1:]
    streams = program.streams[:i] + (new_stream,) + program.streams[i + 1:]
    return MachineAlgorithm(streams, program.result)


def parameter_candidates(program: MachineAlgorithm) -> list[MachineAlgorithm]:
    """列出所有“一个操作数 ±1 / 翻转”的邻居程序（省略的默认操作数先补齐再变动）。

    非法的邻居（如周期变为 0）直接丢弃。
    """
    candidates: list[MachineAlgorithm] = []
    seen: set[str] = set()
    for i, stream in enumerate(program.streams):
        for j, ins in enumerate(stream):
            if isinstance(ins.op, SourceOp):
                continue
            full = ins.with_defaults()
            for k, (value, operand) in enumerate(zip(full.args, SIGNATURES[ins.op])):
                if not operand.mutable:
                    continue
                for new_value in _neighbours(operand.kind, value):
                    candidate = _replace(program, i, j, full.replace_arg(k, new_value))
                    key = candidate.encode()
                    if key in seen or not is_valid(candidate):
                        continue
                    seen.add(key)
                    candidates.append(candidate)
    return candidates


def mutate(program: MachineAlgorithm, rng: random.Random | None = None) -> MachineAlgorithm | None:
    """均匀随机挑选一个邻居程序；没有可变操作数时返回 None。"""
    rng = rng or random.Random()
    candidates = parameter_candidates(program)
    if not candidates:
        return None
    return rng.choice(candidates)


def shift_stream(stream: Sequence[Instruction], offset: int) -> tuple[Instruction, ...]:
    """把一条流中所有流引用平移 offset。"""
    out = []
    for ins in stream:
        sig = SIGNATURES[ins.op]
        args = tuple(
            a + offset if k < len(sig) and sig[k].kind is OperandKind.REF else a
            for k, a in enumerate(ins.args)
        )
        out.append(Instruction(ins.op, args))
    return tuple(out)


def mate(a: MachineAlgorithm, b: MachineAlgorithm, rng: random.Random | None = None) -> MachineAlgorithm:
    """A 的流 + 平移后的 B 的流 + 两条组合流（entry 与 exit 各一条，AND/OR 随机）。

    子代的 rank 沿用 A 的 rank。
    """
    rng = rng or random.Random()
    offset = len(a.streams)
    streams = list(a.streams) + [shift_stream(s, offset) for s in b.streams]

    entry = len(streams)
    streams.append((
        Instruction(SourceOp.STREAM, (a.result.entry,)),
        Instruction(rng.choice(COMBINATORS), (b.result.entry + offset,)),
    ))
    streams.append((
        Instruction(SourceOp.STREAM, (a.result.exit,)),
        Instruction(rng.choice(COMBINATORS), (b.result.exit + offset,)),
    ))
    child = MachineAlgorithm(tuple(streams), AlgResult(entry, entry + 1, a.result.rank))
    return validate(child)
