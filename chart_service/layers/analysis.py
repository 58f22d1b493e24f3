"""
Layer 4 – 评分分析层
每个评分器都是纯函数式、无状态的：CandleSeries → 标量分数。
name 是结果字典里的键，必须稳定。
"""

import logging
from typing import Dict, Protocol

import numpy as np
import pandas as pd

from chart_service.domain import CandleSeries
from chart_service.domain.errors import DegenerateSeriesError, InsufficientDataError

logger = logging.getLogger(__name__)


def _clamp01(v: float) -> float:
    return min(max(v, 0.0), 1.0)


class ScoreCalculator(Protocol):
    name: str

    def score(self, series: CandleSeries) -> float:
        ...


# ── 涨跌幅 ────────────────────────────────────────────────

class GainLossScoreCalculator:
    """区间涨跌幅 (last.close - first.close) / first.close，不做归一化"""

    name = "Gain/Loss"

    def score(self, series: CandleSeries) -> float:
        if len(series) < 2:
            raise InsufficientDataError("at least 2 candles required")
        first, last = series.first().close, series.last().close
        if first == 0:
            raise DegenerateSeriesError("first close is zero, cannot normalize")
        return (last - first) / first


# ── 趋势可预测性 ──────────────────────────────────────────

class TrendPredictabilityScoreCalculator:
    """
    收盘价对序号做最小二乘线性回归

    返回 (斜率 / 价格区间) × R²。价格恒定（R² 无定义或区间为 0）记 0 分；
    序号方差为 0 属于真正的错误。
    """

    name = "Trend Predictability"

    def score(self, series: CandleSeries) -> float:
        n = len(series)
        if n < 2:
            raise InsufficientDataError("at least 2 candles required")

        y = np.asarray(series.closes(), dtype=float)
        x = np.arange(n, dtype=float)
        dx = x - x.mean()
        dy = y - y.mean()

        den = float((dx * dx).sum())
        if den == 0:
            raise DegenerateSeriesError("zero denominator in regression")
        slope = float((dx * dy).sum()) / den

        fit = y.mean() + slope * dx
        ss_tot = float((dy * dy).sum())
        if ss_tot == 0:
            return 0.0
        ss_res = float(((y - fit) ** 2).sum())
        r2 = 1 - ss_res / ss_tot

        price_range = float(y.max() - y.min())
        if price_range == 0:
            return 0.0
        return slope / price_range * r2


# ── 横盘一致性 ────────────────────────────────────────────

class SidewaysConsistencyScoreCalculator:
    """
    横盘程度 = (1 - NDR) × RSS × ODS，结果限制在 [0, 1]

    NDR  净位移比：|末 - 首| / 价格区间
    RSS  区间稳定度：滑动窗口振幅的 1 - 变异系数
    ODS  震荡密度：内部点中局部极值所占比例
    """

    name = "Sideways Consistency"
    min_candles = 6
    window = 5

    def score(self, series: CandleSeries) -> float:
        n = len(series)
        if n < self.min_candles:
            raise InsufficientDataError(f"at least {self.min_candles} candles required")

        closes = pd.Series(series.closes(), dtype=float)

        price_range = closes.max() - closes.min()
        if price_range == 0:
            return 0.0
        ndr = _clamp01(abs(closes.iloc[-1] - closes.iloc[0]) / price_range)

        window = min(self.window, n)
        rolling = closes.rolling(window=window)
        ranges = (rolling.max() - rolling.min()).dropna()
        mean = ranges.mean()
        rss = _clamp01(1 - ranges.std(ddof=0) / mean) if mean > 0 else 0.0

        prev, nxt = closes.shift(1), closes.shift(-1)
        extrema = ((closes > prev) & (closes > nxt)) | ((closes < prev) & (closes < nxt))
        ods = _clamp01(int(extrema.sum()) / (n - 2))

        return _clamp01(float((1 - ndr) * rss * ods))


def default_calculators() -> Dict[str, ScoreCalculator]:
    calcs = [
        SidewaysConsistencyScoreCalculator(),
        TrendPredictabilityScoreCalculator(),
        GainLossScoreCalculator(),
    ]
    return {c.name: c for c in calcs}
