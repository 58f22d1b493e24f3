"""
用例服务测试：概览聚合、区间 K 线、交易对详情
"""

import asyncio
import os
import sys
from unittest.mock import AsyncMock

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from chart_service.domain import Symbol, Timeframe  # noqa: E402
from chart_service.domain.errors import (  # noqa: E402
    DomainValidationError,
    NoCandlesError,
    SymbolNotFoundError,
    UpstreamError,
)
from chart_service.layers.analysis import GainLossScoreCalculator  # noqa: E402
from chart_service.services.candle_service import CandleSeriesService, SymbolDetailService  # noqa: E402
from chart_service.services.overview_service import OverviewService  # noqa: E402
from chart_service.services.ranking_service import (  # noqa: E402
    RankedResult,
    ScoreWeight,
    SortMode,
    WeightedScorer,
)
from fakes import FakeCandleSource, FakeUniverse, make_series, utc  # noqa: E402


def _ranked(*symbols):
    return [RankedResult(Symbol(s), float(len(symbols) - i), {}) for i, s in enumerate(symbols)]


# ─────────────────────────────────────────────────────────
# 1. 概览聚合
# ─────────────────────────────────────────────────────────

class TestOverviewAggregate:
    def test_partial_failure_keeps_survivors(self):
        candles = FakeCandleSource({
            "A": UpstreamError("a down"),
            "B": make_series([1, 2, 3], symbol="B"),
            "C": UpstreamError("c down"),
        })
        svc = OverviewService(AsyncMock(), candles, precision=30, max_workers=2)
        items = asyncio.run(svc.aggregate(_ranked("A", "B", "C"), Timeframe.M1))
        assert [str(i.symbol) for i in items] == ["B"]
        assert items[0].sparkline == [1, 2, 3]

    def test_all_failed_raises(self):
        candles = FakeCandleSource({s: UpstreamError("down") for s in ("A", "B", "C")})
        svc = OverviewService(AsyncMock(), candles)
        with pytest.raises(NoCandlesError, match="no candles for any ranked symbol"):
            asyncio.run(svc.aggregate(_ranked("A", "B", "C"), Timeframe.M1))

    def test_rank_order_preserved(self):
        candles = FakeCandleSource({
            s: make_series([1, 2], symbol=s) for s in ("Z", "A", "M")
        })
        svc = OverviewService(AsyncMock(), candles, max_workers=1)
        items = asyncio.run(svc.aggregate(_ranked("Z", "A", "M"), Timeframe.M1))
        assert [str(i.symbol) for i in items] == ["Z", "A", "M"]

    def test_requests_precision_candles(self):
        candles = FakeCandleSource({"A": make_series(range(1, 50), symbol="A")})
        svc = OverviewService(AsyncMock(), candles, precision=5)
        items = asyncio.run(svc.aggregate(_ranked("A"), Timeframe.M1))
        assert candles.calls == [("last", "A", Timeframe.M1, 5)]
        assert items[0].sparkline == [45, 46, 47, 48, 49]

    def test_empty_candles_dropped(self):
        candles = FakeCandleSource({"B": make_series([1, 2], symbol="B")})
        svc = OverviewService(AsyncMock(), candles)
        items = asyncio.run(svc.aggregate(_ranked("A", "B"), Timeframe.M1))
        assert [str(i.symbol) for i in items] == ["B"]


class TestOverviewExecute:
    def test_truncates_to_limit(self):
        rankings = AsyncMock()
        rankings.execute.return_value = _ranked("A", "B", "C")
        candles = FakeCandleSource({s: make_series([1, 2], symbol=s) for s in ("A", "B", "C")})
        items = asyncio.run(OverviewService(rankings, candles).execute(Timeframe.H1, 2))
        assert [str(i.symbol) for i in items] == ["A", "B"]
        rankings.execute.assert_awaited_once_with(Timeframe.H1, SortMode.TOTAL)

    def test_empty_ranking_is_empty_overview(self):
        rankings = AsyncMock()
        rankings.execute.return_value = []
        items = asyncio.run(OverviewService(rankings, FakeCandleSource({})).execute(Timeframe.H1, 10))
        assert items == []

    def test_item_to_dict(self):
        rankings = AsyncMock()
        rankings.execute.return_value = _ranked("A")
        candles = FakeCandleSource({"A": make_series([1, 2], symbol="A")})
        items = asyncio.run(OverviewService(rankings, candles).execute(Timeframe.M1, 1))
        assert items[0].to_dict() == {"symbol": "A", "totalScore": 1.0, "sparkline": [1, 2]}


# ─────────────────────────────────────────────────────────
# 2. 区间 K 线
# ─────────────────────────────────────────────────────────

class TestCandleSeriesService:
    def test_delegates(self):
        series = make_series([1, 2])
        candles = FakeCandleSource({"BTCUSDT": series})
        svc = CandleSeriesService(candles)
        start, end = utc(2026, 1, 1, 12), utc(2026, 1, 1, 13)
        assert asyncio.run(svc.get_candle_series(Symbol("BTCUSDT"), Timeframe.M1, start, end)) == series
        assert candles.calls[0][3:] == (start, end)

    def test_reversed_range_rejected(self):
        svc = CandleSeriesService(FakeCandleSource({}))
        with pytest.raises(DomainValidationError):
            asyncio.run(svc.get_candle_series(
                Symbol("BTCUSDT"), Timeframe.M1, utc(2026, 1, 2), utc(2026, 1, 1)
            ))

    def test_upstream_error_surfaces(self):
        svc = CandleSeriesService(FakeCandleSource({"BTCUSDT": UpstreamError("down")}))
        with pytest.raises(UpstreamError):
            asyncio.run(svc.get_candle_series(
                Symbol("BTCUSDT"), Timeframe.M1, utc(2026, 1, 1), utc(2026, 1, 2)
            ))


# ─────────────────────────────────────────────────────────
# 3. 交易对详情
# ─────────────────────────────────────────────────────────

class TestSymbolDetailService:
    def _service(self, data, universe=("BTCUSDT",)):
        candles = FakeCandleSource(data)
        scorer = WeightedScorer([ScoreWeight(GainLossScoreCalculator(), 1.0)])
        svc = SymbolDetailService(
            candles, FakeUniverse(universe), scorer=scorer, default_limit=100, max_limit=1000
        )
        return candles, svc

    def test_not_in_universe(self):
        _, svc = self._service({})
        with pytest.raises(SymbolNotFoundError) as exc_info:
            asyncio.run(svc.get_symbol_detail(Symbol("ETHUSDT"), Timeframe.H1))
        assert exc_info.value.symbol == "ETHUSDT"

    @pytest.mark.parametrize("requested,expected", [(0, 100), (-5, 100), (50, 50), (5000, 1000)])
    def test_limit_resolution(self, requested, expected):
        candles, svc = self._service({"BTCUSDT": make_series([1, 2])})
        asyncio.run(svc.get_symbol_detail(Symbol("BTCUSDT"), Timeframe.M1, requested))
        assert candles.calls[0][3] == expected

    def test_stats_computed(self):
        _, svc = self._service({"BTCUSDT": make_series([1, 2, 3, 4, 5])})
        detail = asyncio.run(svc.get_symbol_detail(Symbol("BTCUSDT"), Timeframe.M1))
        assert len(detail.candles) == 5
        assert detail.stats.total_score == pytest.approx(4.0)
        assert detail.to_dict()["stats"]["scores"] == {"Gain/Loss": pytest.approx(4.0)}

    def test_stats_zero_for_short_series(self):
        _, svc = self._service({"BTCUSDT": make_series([1])})
        detail = asyncio.run(svc.get_symbol_detail(Symbol("BTCUSDT"), Timeframe.M1))
        assert detail.to_dict()["stats"] == {"totalScore": 0.0, "scores": {}}

    def test_upstream_error_surfaces(self):
        _, svc = self._service({"BTCUSDT": UpstreamError("down")})
        with pytest.raises(UpstreamError):
            asyncio.run(svc.get_symbol_detail(Symbol("BTCUSDT"), Timeframe.M1))
