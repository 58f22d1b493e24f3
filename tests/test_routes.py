"""
HTTP 路由测试（TestClient，不需要真实 Redis / Binance）

启动后用内存端口重新装配容器，覆盖参数校验、错误映射和分页。
"""

import os
import sys
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from chart_service.config import ChartServiceSettings  # noqa: E402
from chart_service.container import Container  # noqa: E402
from chart_service.domain.errors import UpstreamError  # noqa: E402
from chart_service.layers.analysis import GainLossScoreCalculator  # noqa: E402
from chart_service.layers.cache import MemoryTTLCache  # noqa: E402
from chart_service.services.candle_service import CandleSeriesService, SymbolDetailService  # noqa: E402
from chart_service.services.overview_service import OverviewService  # noqa: E402
from chart_service.services.ranking_service import (  # noqa: E402
    RankingsService,
    ScoreWeight,
    VolumeSortedRanker,
    WeightedRanker,
)
from fakes import FakeCandleSource, FakeUniverse, FakeVolumes, make_series  # noqa: E402

SYMBOLS = ["AAAUSDT", "BBBUSDT", "CCCUSDT", "DDDUSDT", "EEEUSDT"]


def _container(candle_data=None, universe=SYMBOLS) -> Container:
    if candle_data is None:
        candle_data = {s: make_series([1, 1 + i + 1], symbol=s) for i, s in enumerate(SYMBOLS)}
    candles = FakeCandleSource(candle_data)
    fake_universe = FakeUniverse(universe)
    fake_volumes = FakeVolumes({s: 100.0 - i for i, s in enumerate(universe)})
    ranker = WeightedRanker([ScoreWeight(GainLossScoreCalculator(), 1.0)])
    rankings = RankingsService(VolumeSortedRanker(fake_universe, fake_volumes, ranker), candles)
    return Container(
        settings=ChartServiceSettings(),
        cache=MemoryTTLCache(),
        session=None,
        candles=candles,
        universe=fake_universe,
        volumes=fake_volumes,
        candle_series=CandleSeriesService(candles),
        symbol_detail=SymbolDetailService(candles, fake_universe, scorer=ranker.scorer),
        rankings=rankings,
        overview=OverviewService(rankings, candles, precision=30, max_workers=2),
    )


@pytest.fixture(scope="module")
def client():
    """创建测试客户端，mock Redis 连接"""
    with patch("chart_service.db.init_redis", new_callable=AsyncMock, return_value=False), \
         patch("chart_service.db.close_connections", new_callable=AsyncMock), \
         patch("chart_service.db.check_health", new_callable=AsyncMock, return_value={
             "redis": {"status": "disabled"},
         }):
        from chart_service.main import app
        with TestClient(app) as c:
            yield c


@pytest.fixture
def container(client):
    c = _container()
    client.app.state.container = c
    return c


# ─────────────────────────────────────────────────────────
# 1. 健康检查
# ─────────────────────────────────────────────────────────

class TestHealthRoutes:
    def test_health_endpoint(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["status"] == "ok"
        assert body["data"]["databases"]["redis"]["status"] == "disabled"

    def test_healthz_endpoint(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_readyz_endpoint(self, client):
        resp = client.get("/readyz")
        assert resp.status_code == 200
        assert resp.json()["ready"] is True

    def test_root_endpoint(self, client):
        body = client.get("/").json()
        assert "version" in body
        assert "docs" in body

    def test_process_time_header(self, client):
        resp = client.get("/healthz")
        assert resp.headers["X-Process-Time"].endswith("ms")


# ─────────────────────────────────────────────────────────
# 2. K 线
# ─────────────────────────────────────────────────────────

class TestCandleRoutes:
    def test_ok(self, client, container):
        resp = client.get("/api/v1/candles", params={
            "symbol": "aaausdt", "timeframe": "1m",
            "from": "2026-01-01T12:00:00Z", "to": "2026-01-01T13:00:00Z",
        })
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["symbol"] == "AAAUSDT"
        assert data["timeframe"] == "1m"
        assert data["candles"][0]["timestamp"] == "2026-01-01T12:00:00Z"

    def test_missing_params(self, client, container):
        resp = client.get("/api/v1/candles", params={"symbol": "AAAUSDT"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    @pytest.mark.parametrize("params", [
        {"symbol": "BAD/SYM", "timeframe": "1m"},
        {"symbol": "AAAUSDT", "timeframe": "7m"},
        {"symbol": "AAAUSDT", "timeframe": "1m", "from": "yesterday"},
        {"symbol": "AAAUSDT", "timeframe": "1m", "from": "2026-01-02T00:00:00Z"},
    ])
    def test_invalid_params(self, client, container, params):
        query = {"from": "2026-01-01T12:00:00Z", "to": "2026-01-01T13:00:00Z"}
        query.update(params)
        resp = client.get("/api/v1/candles", params=query)
        assert resp.status_code == 400

    def test_upstream_error_is_500(self, client):
        client.app.state.container = _container({"AAAUSDT": UpstreamError("down")})
        resp = client.get("/api/v1/candles", params={
            "symbol": "AAAUSDT", "timeframe": "1m",
            "from": "2026-01-01T12:00:00Z", "to": "2026-01-01T13:00:00Z",
        })
        assert resp.status_code == 500


# ─────────────────────────────────────────────────────────
# 3. 排名
# ─────────────────────────────────────────────────────────

class TestRankingRoutes:
    def test_default_page(self, client, container):
        body = client.get("/api/rankings", params={"timeframe": "1h"}).json()
        data = body["data"]
        assert data["sort"] == "total"
        assert data["page"] == 1
        assert data["pageSize"] == 30
        assert data["totalItems"] == 5
        assert data["totalPages"] == 1
        assert [r["symbol"] for r in data["results"]] == [
            "EEEUSDT", "DDDUSDT", "CCCUSDT", "BBBUSDT", "AAAUSDT",
        ]

    def test_pagination(self, client, container):
        data = client.get("/api/rankings", params={
            "timeframe": "1h", "page": 3, "pageSize": 2,
        }).json()["data"]
        assert data["totalPages"] == 3
        assert [r["symbol"] for r in data["results"]] == ["AAAUSDT"]

    def test_out_of_range_page(self, client, container):
        data = client.get("/api/rankings", params={
            "timeframe": "1h", "page": 9, "pageSize": 2,
        }).json()["data"]
        assert data["results"] == []

    def test_page_size_clamped(self, client, container):
        data = client.get("/api/rankings", params={
            "timeframe": "1h", "page": 0, "pageSize": 500,
        }).json()["data"]
        assert data["page"] == 1
        assert data["pageSize"] == 100

    def test_sort_volume_and_unknown(self, client, container):
        data = client.get("/api/rankings", params={"timeframe": "1h", "sort": "volume"}).json()["data"]
        assert data["results"][0]["symbol"] == "AAAUSDT"
        data = client.get("/api/rankings", params={"timeframe": "1h", "sort": "nope"}).json()["data"]
        assert data["sort"] == "total"

    def test_missing_timeframe(self, client, container):
        assert client.get("/api/rankings").status_code == 400

    def test_empty_universe(self, client):
        client.app.state.container = _container({}, universe=[])
        data = client.get("/api/rankings", params={"timeframe": "1h"}).json()["data"]
        assert data["totalItems"] == 0
        assert data["totalPages"] == 0


# ─────────────────────────────────────────────────────────
# 4. 概览
# ─────────────────────────────────────────────────────────

class TestOverviewRoutes:
    def test_default_limit(self, client, container):
        data = client.get("/api/overview", params={"timeframe": "1h"}).json()["data"]
        assert data["count"] == 5
        assert data["results"][0]["symbol"] == "EEEUSDT"
        assert data["results"][0]["sparkline"] == [1.0, 6.0]

    def test_limit(self, client, container):
        data = client.get("/api/overview", params={"timeframe": "1h", "limit": 2}).json()["data"]
        assert [r["symbol"] for r in data["results"]] == ["EEEUSDT", "DDDUSDT"]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_invalid_limit(self, client, container, limit):
        resp = client.get("/api/overview", params={"timeframe": "1h", "limit": limit})
        assert resp.status_code == 400


# ─────────────────────────────────────────────────────────
# 5. 交易对详情
# ─────────────────────────────────────────────────────────

class TestSymbolRoutes:
    def test_detail(self, client, container):
        resp = client.get("/api/symbol/cccusdt", params={"timeframe": "1h"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["symbol"] == "CCCUSDT"
        assert len(data["candles"]) == 2
        assert data["stats"]["scores"]["Gain/Loss"] == pytest.approx(3.0)

    def test_unknown_symbol(self, client, container):
        resp = client.get("/api/symbol/ZZZUSDT", params={"timeframe": "1h"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "symbol not found: ZZZUSDT"

    def test_invalid_timeframe(self, client, container):
        resp = client.get("/api/symbol/AAAUSDT", params={"timeframe": "2h"})
        assert resp.status_code == 400


# ─────────────────────────────────────────────────────────
# 6. 缓存统计
# ─────────────────────────────────────────────────────────

class TestCacheRoutes:
    def test_stats(self, client, container):
        body = client.get("/api/cache/stats").json()
        assert body["success"] is True
        assert body["data"]["backend"] == "memory"
