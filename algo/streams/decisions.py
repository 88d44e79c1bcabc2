"""决策层：把两条流（或一条流与常数）的比较结果转成边沿触发的布尔流。

- 按“各侧最近值”联结，而不是严格 zip；
- 第一次两侧都有值时只记录基线，不输出；
- 之后只有比较结果与上一次不同才输出（True 表示“刚刚发生转变”，不是“当前成立”）；
- 所有输入流都 complete 后，决策流随之 complete。
"""

from __future__ import annotations

import operator
from typing import Any, Callable

from algo.streams.base import Stream, StreamKind

_UNSET = object()


class DecisionStream(Stream[bool]):
    kind = StreamKind.DECISION


class Decision(DecisionStream):
    def __init__(self, a: Stream, b: Stream | float, compare: Callable[[Any, Any], bool]):
        super().__init__()
        self._compare = compare
        self._previous: bool | None = None
        self._values: list[Any] = [_UNSET, _UNSET]

        inputs: list[tuple[int, Stream]] = [(0, a)]
        if isinstance(b, Stream):
            inputs.append((1, b))
        else:
            self._values[1] = float(b)
        self._pending = len(inputs)

        for side, source in inputs:
            sub = source.subscribe(self._on_value(side), self._input_completed)
            if not sub.closed:
                self._upstream.append(sub)

    def _on_value(self, side: int) -> Callable[[Any], None]:
        def _next(value: Any) -> None:
            self._values[side] = value
            self._evaluate()

        return _next

    def _input_completed(self) -> None:
        self._pending -= 1
        if self._pending <= 0:
            self.complete()

    def _evaluate(self) -> None:
        a, b = self._values
        if a is _UNSET or b is _UNSET:
            return
        result = bool(self._compare(a, b))
        if self._previous is None:
            self._previous = result
            return
        if result != self._previous:
            self._previous = result
            self.emit(result)


class Crossover(Decision):
    """a 上穿 b 时输出 True，回落到 b 之下（含相等）时输出 False。"""

    def __init__(self, a: Stream, b: Stream):
        super().__init__(a, b, operator.gt)


class NegativeCrossover(Decision):
    def __init__(self, a: Stream, b: Stream):
        super().__init__(a, b, operator.lt)


class GreaterThan(Decision):
    def __init__(self, a: Stream, threshold: float):
        super().__init__(a, threshold, operator.gt)


class LessThan(Decision):
    def __init__(self, a: Stream, threshold: float):
        super().__init__(a, threshold, operator.lt)


class And(Decision):
    def __init__(self, a: DecisionStream, b: DecisionStream):
        super().__init__(a, b, lambda x, y: x and y)


class Or(Decision):
    def __init__(self, a: DecisionStream, b: DecisionStream):
        super().__init__(a, b, lambda x, y: x or y)
