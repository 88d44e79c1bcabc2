"""策略程序的静态校验。

在程序进入种群或开始回测之前完成，回测过程中不会再遇到结构性错误。
校验失败抛出 `ProgramValidationError`，消息中包含流下标、指令位置与具体问题。
"""

from __future__ import annotations

import math
from typing import Any, Sequence

from algo.program.opcodes import (
    Operand,
    OperandKind,
    SIGNATURES,
    SourceOp,
    input_kind,
    output_kind,
    ref_kind,
)
from algo.program.program import Instruction, MachineAlgorithm, ProgramValidationError
from algo.streams.base import StreamKind


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _check_operand(operand: Operand, value: Any, where: str, k: int, index: int) -> None:
    kind = operand.kind
    if kind is OperandKind.PERIOD:
        if not _is_int(value) or value <= 0:
            raise ProgramValidationError(f"{where}: operand {k} must be a positive integer period, got {value!r}")
    elif kind is OperandKind.NUMBER:
        if not _is_number(value):
            raise ProgramValidationError(f"{where}: operand {k} must be a finite number, got {value!r}")
    elif kind is OperandKind.FLAG:
        if not isinstance(value, bool):
            raise ProgramValidationError(f"{where}: operand {k} must be a boolean flag, got {value!r}")
    elif kind is OperandKind.SMOOTHING:
        if not _is_number(value) or not 0 <= value <= 1:
            raise ProgramValidationError(f"{where}: operand {k} must be a smoothing constant in [0, 1], got {value!r}")
    elif kind is OperandKind.REF:
        if not _is_int(value):
            raise ProgramValidationError(f"{where}: operand {k} must be a stream index, got {value!r}")
        if value < 0 or value >= index:
            raise ProgramValidationError(
                f"{where}: reference to stream {value} is out of range "
                f"(only earlier streams 0..{index - 1} may be referenced)"
            )


def _check_args(ins: Instruction, where: str, index: int) -> None:
    sig = SIGNATURES[ins.op]
    if len(ins.args) > len(sig):
        raise ProgramValidationError(
            f"{where}: '{ins.op.value}' takes at most {len(sig)} operands, got {len(ins.args)}"
        )
    for k, operand in enumerate(sig):
        if k >= len(ins.args):
            if operand.required:
                raise ProgramValidationError(
                    f"{where}: '{ins.op.value}' is missing required operand {k} ({operand.kind.value})"
                )
            continue
        _check_operand(operand, ins.args[k], where, k, index)


def validate_stream(stream: Sequence[Instruction], index: int, kinds: Sequence[StreamKind]) -> StreamKind:
    """校验第 index 条流（kinds 为之前各流的结果类型），返回该流的结果类型。"""
    if not stream:
        raise ProgramValidationError(f"stream {index}: stream is empty")

    source = stream[0]
    where = f"stream {index}, instruction 0"
    if not isinstance(source.op, SourceOp):
        raise ProgramValidationError(
            f"{where}: first instruction must be a source opcode (candles/stream), got '{source.op.value}'"
        )
    _check_args(source, where, index)
    kind = StreamKind.CANDLES if source.op is SourceOp.CANDLES else kinds[source.args[0]]

    for pos, ins in enumerate(stream[1:], start=1):
        where = f"stream {index}, instruction {pos}"
        if isinstance(ins.op, SourceOp):
            raise ProgramValidationError(f"{where}: source opcode '{ins.op.value}' is only allowed first")
        _check_args(ins, where, index)
        expected = input_kind(ins.op)
        if kind is not expected:
            raise ProgramValidationError(
                f"{where}: '{ins.op.value}' applies to {expected.value} streams, current stream is {kind.value}"
            )
        wanted = ref_kind(ins.op)
        if wanted is not None:
            for ref in ins.refs:
                if kinds[ref] is not wanted:
                    raise ProgramValidationError(
                        f"{where}: '{ins.op.value}' needs a {wanted.value} stream, stream {ref} is {kinds[ref].value}"
                    )
        kind = output_kind(ins.op)
    return kind


def stream_kinds(program: MachineAlgorithm) -> list[StreamKind]:
    """逐条校验所有流并返回它们的结果类型。"""
    if not program.streams:
        raise ProgramValidationError("program has no streams")
    kinds: list[StreamKind] = []
    for i, stream in enumerate(program.streams):
        kinds.append(validate_stream(stream, i, kinds))
    return kinds


def _check_result_index(name: str, value: Any, kinds: Sequence[StreamKind], expected: StreamKind) -> None:
    if not _is_int(value):
        raise ProgramValidationError(f"result.{name} must be a stream index, got {value!r}")
    if not 0 <= value < len(kinds):
        raise ProgramValidationError(f"result.{name} = {value} is out of range (program has {len(kinds)} streams)")
    if kinds[value] is not expected:
        raise ProgramValidationError(
            f"result.{name} must select a {expected.value} stream, stream {value} is {kinds[value].value}"
        )


def validate(program: MachineAlgorithm) -> MachineAlgorithm:
    """校验整个程序，合法时原样返回。"""
    if not isinstance(program, MachineAlgorithm):
        raise ProgramValidationError(f"expected MachineAlgorithm, got {type(program).__name__}")
    kinds = stream_kinds(program)
    _check_result_index("entry", program.result.entry, kinds, StreamKind.DECISION)
    _check_result_index("exit", program.result.exit, kinds, StreamKind.DECISION)
    if program.result.rank is not None:
        _check_result_index("rank", program.result.rank, kinds, StreamKind.PRICE)
    return program


def is_valid(program: MachineAlgorithm) -> bool:
    try:
        validate(program)
    except ProgramValidationError:
        return False
    return True


def load_program(text: str) -> MachineAlgorithm:
    """解码并校验。"""
    return validate(MachineAlgorithm.decode(text))
