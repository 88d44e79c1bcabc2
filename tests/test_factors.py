from __future__ import annotations

import math

import pytest

from algo.factors.bollinger import BollingerFactor, EMABollingerFactor, VWBollingerFactor
from algo.factors.ema import EMAFactor, smoothing_constant
from algo.factors.ma import SMAFactor, VWMAFactor
from algo.factors.macd import MACDFactor
from algo.factors.oscillators import ROCFactor, StochasticFactor, StochNormalizeFactor
from algo.factors.rsi import RSIFactor, SmoothedRSIFactor
from algo.factors.volume import MFIFactor, OBVFactor
from algo.streams.candles import CandleStream
from algo.streams.price import PriceStream
from candle_factory import candles_from_closes, make_candle, zigzag_closes


def _run(factor, values):
    out = []
    for v in values:
        r = factor.step(v)
        if r is not None:
            out.append(r)
    return out


def test_sma_warm_up_and_values():
    assert _run(SMAFactor(3), [1.0, 2.0, 3.0, 4.0, 5.0]) == [2.0, 3.0, 4.0]
    # period 个值之前不输出
    assert _run(SMAFactor(10), [1.0] * 9) == []


def test_ema_seeds_with_sma_then_recurses():
    out = _run(EMAFactor(3), [1.0, 2.0, 3.0, 4.0])
    assert len(out) == 2
    assert abs(out[0] - 2.0) < 1e-9
    assert abs(out[1] - 3.0) < 1e-9


def test_ema_explicit_smoothing_and_clamp():
    out = _run(EMAFactor(2, smoothing=0.2), [1.0, 3.0, 5.0])
    assert abs(out[-1] - (0.2 * 5.0 + 0.8 * 2.0)) < 1e-9
    # 超出 (0, 1] 的平滑系数回退到 2/(period+1)
    assert abs(smoothing_constant(2, 1.5) - 2.0 / 3.0) < 1e-12
    assert abs(smoothing_constant(2, 0) - 2.0 / 3.0) < 1e-12
    assert smoothing_constant(4, 1.0) == 1.0


def test_bollinger_bands_use_population_std():
    sdev = math.sqrt(2.0 / 3.0)
    upper = _run(BollingerFactor(period=3, upper=True, deviations=2.0), [1.0, 2.0, 3.0])
    lower = _run(BollingerFactor(period=3, upper=False, deviations=2.0), [1.0, 2.0, 3.0])
    assert abs(upper[0] - (2.0 + 2 * sdev)) < 1e-9
    assert abs(lower[0] - (2.0 - 2 * sdev)) < 1e-9


def test_ema_bollinger_first_value_matches_sma_band():
    ema_band = _run(EMABollingerFactor(period=3, deviations=2.0), [1.0, 2.0, 3.0])
    sma_band = _run(BollingerFactor(period=3, deviations=2.0), [1.0, 2.0, 3.0])
    assert len(ema_band) == 1
    assert abs(ema_band[0] - sma_band[0]) < 1e-9


def test_volume_weighted_band_with_equal_volume_matches_typical_band():
    candles = candles_from_closes([10.0, 12.0, 11.0, 13.0], volume=5.0)
    vw = _run(VWBollingerFactor(period=4, deviations=1.5), candles)
    plain = _run(BollingerFactor(period=4, deviations=1.5), [c.typical for c in candles])
    assert abs(vw[0] - plain[0]) < 1e-9


def test_vwma_skips_zero_volume_window():
    candles = candles_from_closes([10.0, 11.0, 12.0], volume=0.0)
    assert _run(VWMAFactor(2), candles) == []
    weighted = [
        make_candle(0, 10.0, volume=1.0),
        make_candle(1, 20.0, volume=3.0),
    ]
    assert abs(_run(VWMAFactor(2), weighted)[0] - 17.5) < 1e-9


def test_macd_aligns_both_legs():
    out = _run(MACDFactor(2, 3), [1.0, 2.0, 3.0, 4.0, 5.0])
    assert len(out) == 3
    assert all(abs(v - 0.5) < 1e-9 for v in out)


def test_roc_window_is_period_plus_one():
    assert _run(ROCFactor(2), [100.0, 105.0]) == []
    assert _run(ROCFactor(2), [100.0, 105.0, 110.0]) == [10.0]
    assert _run(ROCFactor(2), [0.0, 1.0, 2.0]) == []


def test_stochastic_and_flat_window():
    candles = candles_from_closes([1.0, 2.0, 3.0])
    out = _run(StochasticFactor(3), candles)
    assert abs(out[0] - 100.0 * 2.5 / 3.0) < 1e-9

    flat = [make_candle(i, 5.0, spread=0.0) for i in range(5)]
    assert _run(StochasticFactor(3), flat) == []


def test_take_stoch_normalizes_and_skips_flat_window():
    out = _run(StochNormalizeFactor(3), [1.0, 2.0, 3.0, 3.0, 3.0, 3.0])
    assert out == [1.0, 1.0]


def test_rsi_bounds_and_flat_data():
    rising = candles_from_closes([float(x) for x in range(1, 40)])
    out = _run(RSIFactor(14), rising)
    assert len(out) == len(rising) - 13
    assert all(99.99 < v <= 100.0 for v in out)

    flat = candles_from_closes([5.0] * 20)
    assert _run(RSIFactor(14), flat) == [50.0] * 7

    mixed = candles_from_closes(zigzag_closes(120))
    for factor in (RSIFactor(14), SmoothedRSIFactor(14)):
        values = _run(factor, mixed)
        assert values
        assert all(0.0 <= v <= 100.0 and math.isfinite(v) for v in values)


def _candles_with_changes(percents):
    return [make_candle(i, 100.0 + p, open_=100.0) for i, p in enumerate(percents)]


def test_rsi_averages_each_side_over_its_own_candles():
    # 三根上涨、一根下跌，幅度相同：RS = 1
    out = _run(RSIFactor(4), _candles_with_changes([1.0, 1.0, 1.0, -1.0]))
    assert len(out) == 1
    assert abs(out[0] - 50.0) < 1e-6

    # 平盘计入上涨一侧：avgGain = (2% + 0)/2，avgLoss = (1% + 3%)/2，RS = 0.5
    out = _run(RSIFactor(4), _candles_with_changes([2.0, 0.0, -1.0, -3.0]))
    assert abs(out[0] - 100.0 / 3.0) < 1e-6


def test_smoothed_rsi_carries_averages_forward():
    out = _run(SmoothedRSIFactor(4), _candles_with_changes([2.0, 0.0, -1.0, -3.0, 4.0]))
    assert len(out) == 2
    assert abs(out[0] - 100.0 / 3.0) < 1e-6
    # gain = (0.01·3 + 0.04)/4，loss = 0.02·3/4
    gain, loss = 0.0175, 0.015
    assert abs(out[1] - (100.0 - 100.0 / (1.0 + gain / loss))) < 1e-6


def test_stoch_rsi_normalizes_rsi_window():
    candles = CandleStream()
    out = candles.stoch_rsi(2).collect()
    for c in _candles_with_changes([1.0, -1.0, 3.0, -3.0]):
        candles.emit(c)
    # RSI(2): 50, 75, 50
    assert len(out) == 2
    assert abs(out[0] - 1.0) < 1e-9
    assert abs(out[1]) < 1e-9


def test_stochastic_chain_warm_up():
    candles = CandleStream()
    k = candles.stoch(14).collect()
    d = candles.stoch_d(14, 3).collect()
    slow_d = candles.stoch_slow_d(14, 3, 3).collect()
    first: dict[str, int] = {}
    for i, c in enumerate(candles_from_closes(zigzag_closes(40))):
        candles.emit(c)
        for name, seen in (("k", k), ("d", d), ("slow_d", slow_d)):
            if seen and name not in first:
                first[name] = i
    # 下标从 0 计：%K 落在第 14 根，%D 再等 3 个 %K，慢速 %D 再等 3 个 %D
    assert first == {"k": 13, "d": 14 + 3 - 2, "slow_d": 14 + 3 + 3 - 3}
    assert len(d) == len(k) - 2
    assert len(slow_d) == len(d) - 2
    # %D 的种子是前 3 个 %K 的均值
    assert abs(d[0] - sum(k[:3]) / 3) < 1e-9


def test_volume_weighted_macd_and_signal():
    candles = CandleStream()
    macd = candles.volume_weighted_macd_of(2, 3).collect()
    signal = candles.volume_weighted_macd_signal_of(2, 3, 2).collect()
    for c in candles_from_closes([1.0, 2.0, 3.0, 4.0, 5.0], volume=2.0):
        candles.emit(c)
    # 成交量相同时 VWMA 即收盘价均值：SMA(2) − SMA(3) = 0.5
    assert len(macd) == 3 and all(abs(v - 0.5) < 1e-9 for v in macd)
    assert len(signal) == 2 and all(abs(v - 0.5) < 1e-9 for v in signal)


def test_obv_folds_signed_volume():
    candles = [
        make_candle(0, 11.0, open_=10.0, volume=10.0),
        make_candle(1, 9.0, open_=11.0, volume=20.0),
        make_candle(2, 12.0, open_=9.0, volume=30.0),
        make_candle(3, 12.0, open_=12.0, volume=99.0),
    ]
    assert _run(OBVFactor(), candles) == [10.0, -10.0, 20.0, 20.0]


def test_mfi_window_and_zero_side_floor():
    rising = candles_from_closes([float(x) for x in range(1, 17)], volume=2.0)
    out = _run(MFIFactor(14), rising)
    # 窗口为 period+1 根
    assert len(out) == len(rising) - 14
    assert all(0.0 < v < 100.0 for v in out)


@pytest.mark.parametrize("factory", [
    lambda: SMAFactor(0),
    lambda: EMAFactor(-1),
    lambda: ROCFactor(0),
    lambda: MFIFactor(0),
    lambda: MACDFactor(0, 26),
    lambda: BollingerFactor(period=0),
])
def test_non_positive_period_is_rejected(factory):
    with pytest.raises(ValueError):
        factory()


def test_invalid_period_message_and_stream_construction():
    with pytest.raises(ValueError, match="SMA period must be > 0"):
        SMAFactor(0)
    with pytest.raises(ValueError):
        PriceStream().sma(0)
    with pytest.raises(ValueError):
        SMAFactor(True)


def test_every_candle_indicator_stays_finite():
    candles = CandleStream()
    streams = [
        candles.stoch(),
        candles.stoch_slow(),
        candles.stoch_slow_d(),
        candles.rsi(),
        candles.smoothed_rsi(),
        candles.obv(),
        candles.vwma(),
        candles.volume_weighted_bollinger_band(upper=False),
        candles.volume_weighted_macd_signal(),
        candles.mfi(),
        candles.stoch_rsi(),
        candles.typical().macd_signal(),
        candles.close().bollinger_band_ema(period=10),
        candles.close().roc(),
        candles.close().inverse(),
    ]
    outputs = [s.collect() for s in streams]
    for c in candles_from_closes(zigzag_closes(200), volume=3.0):
        candles.emit(c)
    for values in outputs:
        assert values
        assert all(math.isfinite(v) for v in values)
