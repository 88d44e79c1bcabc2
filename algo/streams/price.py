"""数值流（PriceStream）及其链式指标 API。

每个方法都基于一个新的因子实例派生出新的 PriceStream，调用两次得到两条互不共享状态的流。
"""

from __future__ import annotations

from algo.factors.base import MapFactor
from algo.factors.bollinger import BollingerFactor, EMABollingerFactor
from algo.factors.ema import EMAFactor
from algo.factors.ma import SMAFactor
from algo.factors.macd import MACDFactor
from algo.factors.oscillators import ROCFactor, StochNormalizeFactor
from algo.streams.base import Stream, StreamKind


def _inverse(value: float) -> float | None:
    return None if value == 0 else 1.0 / value


class PriceStream(Stream[float]):
    kind = StreamKind.PRICE

    def sma(self, period: int) -> "PriceStream":
        return self.derive(SMAFactor(period), PriceStream)

    def ema(self, period: int, smoothing: float | None = None) -> "PriceStream":
        return self.derive(EMAFactor(period, smoothing=smoothing), PriceStream)

    def bollinger_band(self, upper: bool = True, period: int = 20, deviations: float = 2) -> "PriceStream":
        """SMA 中轨布林带（upper=False 为下轨）。"""
        return self.derive(BollingerFactor(period=period, upper=upper, deviations=deviations), PriceStream)

    def bollinger_band_ema(
        self,
        upper: bool = True,
        period: int = 20,
        deviations: float = 2,
        smoothing: float | None = None,
    ) -> "PriceStream":
        """EMA 中轨布林带。"""
        factor = EMABollingerFactor(period=period, upper=upper, deviations=deviations, smoothing=smoothing)
        return self.derive(factor, PriceStream)

    def macd_of(self, fast: int = 12, slow: int = 26) -> "PriceStream":
        return self.derive(MACDFactor(fast, slow), PriceStream)

    def macd(self) -> "PriceStream":
        return self.macd_of()

    def macd_signal_of(self, fast: int = 12, slow: int = 26, signal: int = 9) -> "PriceStream":
        """MACD 信号线：EMA(MACD(fast, slow), signal)。"""
        return self.macd_of(fast, slow).ema(signal)

    def macd_signal(self) -> "PriceStream":
        return self.macd_signal_of()

    def roc(self, period: int = 12) -> "PriceStream":
        return self.derive(ROCFactor(period), PriceStream)

    def take_stoch(self, period: int = 14) -> "PriceStream":
        """按窗口极值把数值归一化到 [0, 1]。"""
        return self.derive(StochNormalizeFactor(period), PriceStream)

    def inverse(self) -> "PriceStream":
        return self.derive(MapFactor(_inverse, name="inverse"), PriceStream)
