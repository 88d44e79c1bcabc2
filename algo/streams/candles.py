"""K 线流（CandleStream）：行情回放的源头，提供字段提取与基于 K 线的指标。"""

from __future__ import annotations

from operator import attrgetter

from algo.factors.base import MapFactor
from algo.factors.bollinger import VWBollingerFactor
from algo.factors.ma import VWMAFactor
from algo.factors.macd import VWMACDFactor
from algo.factors.oscillators import StochasticFactor
from algo.factors.rsi import RSIFactor, SmoothedRSIFactor
from algo.factors.volume import MFIFactor, OBVFactor
from algo.streams.base import Stream, StreamKind
from algo.streams.price import PriceStream
from shared.models.models import Candle


def _gain(candle: Candle) -> float | None:
    if candle.open == 0:
        return None
    return (candle.close - candle.open) / candle.open


class CandleStream(Stream[Candle]):
    kind = StreamKind.CANDLES

    def _field(self, name: str) -> PriceStream:
        return self.derive(MapFactor(attrgetter(name), name=name), PriceStream)

    def open(self) -> PriceStream:
        return self._field("open")

    def close(self) -> PriceStream:
        return self._field("close")

    def high(self) -> PriceStream:
        return self._field("high")

    def low(self) -> PriceStream:
        return self._field("low")

    def volume(self) -> PriceStream:
        return self._field("volume")

    def typical(self) -> PriceStream:
        """典型价 (high + low + close) / 3。"""
        return self._field("typical")

    def gain(self) -> PriceStream:
        """单根 K 线涨跌幅 (close − open)/open。"""
        return self.derive(MapFactor(_gain, name="gain"), PriceStream)

    def stoch(self, period: int = 14) -> PriceStream:
        return self.derive(StochasticFactor(period), PriceStream)

    def stoch_d(self, period: int = 14, avg_period: int = 3) -> PriceStream:
        """%D = EMA(%K, avg_period)。"""
        return self.stoch(period).ema(avg_period)

    def stoch_slow(self, period: int = 14, avg_period: int = 3) -> PriceStream:
        """慢速 %K 即快速 %D。"""
        return self.stoch_d(period, avg_period)

    def stoch_slow_d(self, period: int = 14, avg_period: int = 3, second_avg_period: int = 3) -> PriceStream:
        return self.stoch_slow(period, avg_period).ema(second_avg_period)

    def rsi(self, period: int = 14) -> PriceStream:
        return self.derive(RSIFactor(period), PriceStream)

    def smoothed_rsi(self, period: int = 14) -> PriceStream:
        return self.derive(SmoothedRSIFactor(period), PriceStream)

    def obv(self) -> PriceStream:
        return self.derive(OBVFactor(), PriceStream)

    def vwma(self, period: int = 14) -> PriceStream:
        return self.derive(VWMAFactor(period), PriceStream)

    def volume_weighted_bollinger_band(self, upper: bool = True, period: int = 20, deviations: float = 2) -> PriceStream:
        return self.derive(VWBollingerFactor(period=period, upper=upper, deviations=deviations), PriceStream)

    def volume_weighted_macd_of(self, fast: int = 12, slow: int = 26) -> PriceStream:
        """VWMA(fast) − VWMA(slow)。"""
        return self.derive(VWMACDFactor(fast, slow), PriceStream)

    def volume_weighted_macd(self) -> PriceStream:
        return self.volume_weighted_macd_of()

    def volume_weighted_macd_signal_of(self, fast: int = 12, slow: int = 26, signal: int = 9) -> PriceStream:
        return self.volume_weighted_macd_of(fast, slow).ema(signal)

    def volume_weighted_macd_signal(self) -> PriceStream:
        return self.volume_weighted_macd_signal_of()

    def mfi(self, period: int = 14) -> PriceStream:
        return self.derive(MFIFactor(period), PriceStream)

    def stoch_rsi(self, period: int = 14) -> PriceStream:
        """随机 RSI：对 RSI(period) 再做 period 窗口的随机归一化。"""
        return self.rsi(period).take_stoch(period)
