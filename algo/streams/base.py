"""信号流（Signal Stream）：推送式、有序、可终止的数据序列。

约定：
- `emit(value)` 同步推送给当前所有订阅者，顺序即订阅顺序；
- `complete()` 是终态：释放本流持有的上游订阅，并向下游传播 complete；
- 派生流通过 `derive(factor)` 构建，每个派生流独占一个 factor 实例（窗口缓冲、EMA 累计值等），
  同一个“逻辑指标”的两次派生之间绝不共享状态。

同一根 K 线会在进入下一根之前完成整条派生链与决策边沿的推送，单个策略程序内不做并发。
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from algo.factors.base import Factor

T = TypeVar("T")
S = TypeVar("S", bound="Stream")


class StreamKind(str, Enum):
    """流的值类型。"""

    CANDLES = "candles"
    PRICE = "price"
    DECISION = "decision"


class Subscription:
    """一次订阅的句柄。"""

    def __init__(self, stream: "Stream", on_next: Callable[[Any], None], on_complete: Callable[[], None] | None):
        self._stream: Stream | None = stream
        self.on_next = on_next
        self.on_complete = on_complete

    @property
    def closed(self) -> bool:
        return self._stream is None

    def unsubscribe(self) -> None:
        if self._stream is None:
            return
        self._stream._remove(self)
        self._stream = None


class Stream(Generic[T]):
    """推送式有序流。"""

    kind: StreamKind = StreamKind.PRICE

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._upstream: list[Subscription] = []
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def observer_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        on_next: Callable[[T], None],
        on_complete: Callable[[], None] | None = None,
    ) -> Subscription:
        sub = Subscription(self, on_next, on_complete)
        if self._completed:
            sub._stream = None
            if on_complete is not None:
                on_complete()
            return sub
        self._subscriptions.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        try:
            self._subscriptions.remove(sub)
        except ValueError:
            pass

    def emit(self, value: T) -> None:
        if self._completed:
            raise RuntimeError(f"emit() on completed {type(self).__name__}")
        # 订阅者回调里可能取消订阅，遍历快照
        for sub in tuple(self._subscriptions):
            if not sub.closed:
                sub.on_next(value)

    def complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        for up in self._upstream:
            up.unsubscribe()
        self._upstream.clear()
        subs = tuple(self._subscriptions)
        self._subscriptions.clear()
        for sub in subs:
            sub._stream = None
            if sub.on_complete is not None:
                sub.on_complete()

    def attach(self, source: "Stream", on_next: Callable[[Any], None]) -> Subscription:
        """订阅上游：上游 complete 时本流随之 complete，本流 complete 时释放该订阅。"""
        sub = source.subscribe(on_next, self.complete)
        if not sub.closed:
            self._upstream.append(sub)
        return sub

    def derive(self, factor: Factor, cls: type[S]) -> S:
        """用一个新的 factor 实例派生出下游流。"""
        out = cls()

        def _on_next(value: Any) -> None:
            result = factor.step(value)
            if result is not None:
                out.emit(result)

        out.attach(self, _on_next)
        return out

    def collect(self) -> list[T]:
        """把后续推送的值收集到一个列表（测试/调试用）。"""
        values: list[T] = []
        self.subscribe(values.append)
        return values


class Latest(Generic[T]):
    """记录某个流最近一次推送的值。"""

    def __init__(self, stream: Stream[T] | None = None):
        self.value: T | None = None
        self.has_value = False
        self.subscription: Subscription | None = None
        if stream is not None:
            self.subscription = stream.subscribe(self._on_next)

    def _on_next(self, value: T) -> None:
        self.value = value
        self.has_value = True
