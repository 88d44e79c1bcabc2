"""策略程序构建器。

每添加一条流就立即校验，并返回一个 `StreamHandle`（流下标 + 结果类型）；
只能引用已经发放过的句柄，因此构建出的程序天然满足“只引用更早的流”。

示例::

    b = ProgramBuilder()
    fast = b.candles((CandleOp.CLOSE,), (PriceOp.SMA, 5))
    slow = b.candles((CandleOp.CLOSE,), (PriceOp.SMA, 20))
    entry = b.derive(fast, (DecisionOp.CROSSOVER, slow))
    exit_ = b.derive(slow, (DecisionOp.CROSSOVER, fast))
    program = b.build(entry, exit_)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Union

from algo.program.opcodes import SourceOp
from algo.program.program import AlgResult, Instruction, MachineAlgorithm, ProgramValidationError
from algo.program.validation import validate, validate_stream
from algo.streams.base import StreamKind


@dataclass(frozen=True)
class StreamHandle:
    index: int
    kind: StreamKind


Step = Union[Instruction, Sequence[Any]]


class ProgramBuilder:
    def __init__(self) -> None:
        self._streams: list[tuple[Instruction, ...]] = []
        self._kinds: list[StreamKind] = []

    def __len__(self) -> int:
        return len(self._streams)

    def _own(self, handle: StreamHandle) -> int:
        if not isinstance(handle, StreamHandle) or not 0 <= handle.index < len(self._streams):
            raise ProgramValidationError(f"unknown stream handle: {handle!r}")
        if self._kinds[handle.index] is not handle.kind:
            raise ProgramValidationError(f"stale stream handle: {handle!r}")
        return handle.index

    def _instruction(self, step: Step) -> Instruction:
        if isinstance(step, Instruction):
            return step
        op, *args = step
        return Instruction(op, tuple(self._own(a) if isinstance(a, StreamHandle) else a for a in args))

    def add(self, steps: Sequence[Step]) -> StreamHandle:
        """添加一条完整的流（含源指令）；非法时抛错且不修改构建器状态。"""
        stream = tuple(self._instruction(s) for s in steps)
        kind = validate_stream(stream, len(self._streams), self._kinds)
        self._streams.append(stream)
        self._kinds.append(kind)
        return StreamHandle(len(self._streams) - 1, kind)

    def candles(self, *steps: Step) -> StreamHandle:
        return self.add([(SourceOp.CANDLES,), *steps])

    def derive(self, source: StreamHandle, *steps: Step) -> StreamHandle:
        return self.add([(SourceOp.STREAM, source), *steps])

    def build(self, entry: StreamHandle, exit: StreamHandle, rank: StreamHandle | None = None) -> MachineAlgorithm:
        result = AlgResult(
            entry=self._own(entry),
            exit=self._own(exit),
            rank=None if rank is None else self._own(rank),
        )
        return validate(MachineAlgorithm(tuple(self._streams), result))
