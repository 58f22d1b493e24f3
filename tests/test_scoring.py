"""
评分分析层测试（涨跌幅 / 趋势可预测性 / 横盘一致性）
"""

import os
import sys

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from chart_service.domain.errors import DegenerateSeriesError, InsufficientDataError  # noqa: E402
from chart_service.layers.analysis import (  # noqa: E402
    GainLossScoreCalculator,
    SidewaysConsistencyScoreCalculator,
    TrendPredictabilityScoreCalculator,
    default_calculators,
)
from fakes import make_series  # noqa: E402


class TestGainLoss:
    def setup_method(self):
        self.calc = GainLossScoreCalculator()

    def test_rising(self):
        assert self.calc.score(make_series([1, 2, 3, 4, 5])) == pytest.approx(4.0)

    def test_falling(self):
        assert self.calc.score(make_series([10, 5])) == pytest.approx(-0.5)

    def test_insufficient(self):
        with pytest.raises(InsufficientDataError):
            self.calc.score(make_series([1]))

    def test_zero_first_close(self):
        with pytest.raises(DegenerateSeriesError):
            self.calc.score(make_series([0, 1]))


class TestTrendPredictability:
    def setup_method(self):
        self.calc = TrendPredictabilityScoreCalculator()

    def test_perfect_uptrend(self):
        # 斜率 1，区间 4，R² = 1
        assert self.calc.score(make_series([1, 2, 3, 4, 5])) == pytest.approx(0.25)

    def test_perfect_downtrend(self):
        assert self.calc.score(make_series([5, 4, 3, 2, 1])) == pytest.approx(-0.25)

    def test_flat_line_scores_zero(self):
        assert self.calc.score(make_series([3, 3, 3, 3])) == 0.0

    def test_noisy_trend_is_damped(self):
        clean = self.calc.score(make_series([1, 2, 3, 4, 5]))
        noisy = self.calc.score(make_series([1, 3, 2, 5, 4]))
        assert 0 < noisy < clean

    def test_insufficient(self):
        with pytest.raises(InsufficientDataError):
            self.calc.score(make_series([1]))


class TestSidewaysConsistency:
    def setup_method(self):
        self.calc = SidewaysConsistencyScoreCalculator()

    def test_flat_scores_exactly_zero(self):
        assert self.calc.score(make_series([5.0] * 10)) == 0

    def test_perfect_oscillation(self):
        # 首尾相同、每个内部点都是极值、窗口振幅恒定
        closes = [1, 2, 1, 2, 1, 2, 1, 2, 1]
        assert self.calc.score(make_series(closes)) == pytest.approx(1.0)

    def test_strong_trend_scores_zero(self):
        assert self.calc.score(make_series([1, 2, 3, 4, 5, 6, 7])) == pytest.approx(0.0)

    def test_bounded(self):
        score = self.calc.score(make_series([3, 5, 2, 6, 4, 4.5, 3.5, 5.5]))
        assert 0.0 <= score <= 1.0

    def test_insufficient(self):
        with pytest.raises(InsufficientDataError):
            self.calc.score(make_series([1, 2, 1, 2, 1]))


def test_default_calculators_are_keyed_by_name():
    calcs = default_calculators()
    assert set(calcs) == {"Gain/Loss", "Trend Predictability", "Sideways Consistency"}
