"""
带缓存的端口装饰器
每个装饰器与被包装组件实现相同的接口，内部各自持有一个 CacheAside 实例，
区别只在缓存键和载荷形状。
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List

from chart_service.domain import CandleSeries, Symbol, Timeframe
from chart_service.layers.cache import CacheAside
from chart_service.layers.processing import ProcessingLayer
from chart_service.services.overview_service import OverviewItem
from chart_service.services.ports import CandleSource, SymbolUniverse, TTLCache, VolumeSource
from chart_service.services.ranking_service import RankedResult, SortMode

logger = logging.getLogger(__name__)


def _iso(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ── K 线 ──────────────────────────────────────────────────

class CachedCandleSource:
    """
    K 线缓存

    最近 N 根的缓存键带上当前周期边界，跨过边界（新 K 线收盘）后自动换键。
    """

    def __init__(
        self,
        inner: CandleSource,
        cache: TTLCache,
        ttl: int,
        processor: ProcessingLayer,
        clock: Callable[[], datetime] = lambda: datetime.now(tz=timezone.utc),
    ):
        self._inner = inner
        self._proc = processor
        self._clock = clock
        self._cache = cache
        self._ttl = ttl

    def _aside(self, symbol: Symbol, timeframe: Timeframe) -> CacheAside[CandleSeries]:
        return CacheAside(
            self._cache,
            "candles",
            self._ttl,
            serialize=self._proc.series_to_records,
            deserialize=lambda records: self._proc.records_to_series(records, symbol, timeframe),
        )

    async def get_series(
        self, symbol: Symbol, timeframe: Timeframe, start: datetime, end: datetime
    ) -> CandleSeries:
        aside = self._aside(symbol, timeframe)
        return await aside.get_or_load(
            [str(symbol), timeframe.value, _iso(start), _iso(end)],
            lambda: self._inner.get_series(symbol, timeframe, start, end),
        )

    async def get_last_n_candles(self, symbol: Symbol, timeframe: Timeframe, n: int) -> CandleSeries:
        boundary = timeframe.floor(self._clock())
        aside = self._aside(symbol, timeframe)
        return await aside.get_or_load(
            [str(symbol), timeframe.value, "last", str(n), _iso(boundary)],
            lambda: self._inner.get_last_n_candles(symbol, timeframe, n),
        )


# ── 交易对列表 / 成交额 ───────────────────────────────────

def _symbols_to_payload(symbols: List[Symbol]) -> List[str]:
    return [str(s) for s in symbols]


def _payload_to_symbols(payload) -> List[Symbol]:
    if not isinstance(payload, list):
        raise TypeError("cached universe payload must be a list")
    return [Symbol(s) for s in payload]


def _payload_to_volumes(payload) -> Dict[str, float]:
    if not isinstance(payload, dict):
        raise TypeError("cached volume payload must be an object")
    return {str(k): float(v) for k, v in payload.items()}


class CachedSymbolUniverse:
    def __init__(self, inner: SymbolUniverse, cache: TTLCache, ttl: int):
        self._inner = inner
        self._aside = CacheAside(cache, "universe", ttl, _symbols_to_payload, _payload_to_symbols)

    @property
    def name(self) -> str:
        return self._inner.name

    async def symbols(self) -> List[Symbol]:
        return await self._aside.get_or_load([self._inner.name], self._inner.symbols)


class CachedVolumeSource:
    def __init__(self, inner: VolumeSource, cache: TTLCache, ttl: int):
        self._inner = inner
        self._aside = CacheAside(cache, "volumes", ttl, dict, _payload_to_volumes)

    @property
    def name(self) -> str:
        return self._inner.name

    async def volumes(self) -> Dict[str, float]:
        return await self._aside.get_or_load([self._inner.name], self._inner.volumes)


# ── 排名 / 概览 ───────────────────────────────────────────

def _results_from_payload(payload) -> List[RankedResult]:
    if not isinstance(payload, list):
        raise TypeError("cached rankings payload must be a list")
    return [RankedResult.from_dict(item) for item in payload]


def _overview_from_payload(payload) -> List[OverviewItem]:
    if not isinstance(payload, list):
        raise TypeError("cached overview payload must be a list")
    return [OverviewItem.from_dict(item) for item in payload]


class CachedRankings:
    """全量排名结果缓存，键为 timeframe + 排序模式"""

    def __init__(self, inner, cache, ttl: int):
        self._inner = inner
        self._aside = CacheAside(
            cache,
            "rankings",
            ttl,
            serialize=lambda results: [r.to_dict() for r in results],
            deserialize=_results_from_payload,
        )

    async def execute(self, timeframe: Timeframe, sort: SortMode = SortMode.TOTAL) -> List[RankedResult]:
        return await self._aside.get_or_load(
            [timeframe.value, sort.value],
            lambda: self._inner.execute(timeframe, sort),
        )


class CachedOverview:
    def __init__(self, inner, cache, ttl: int):
        self._inner = inner
        self._aside = CacheAside(
            cache,
            "overview",
            ttl,
            serialize=lambda items: [i.to_dict() for i in items],
            deserialize=_overview_from_payload,
        )

    async def execute(self, timeframe: Timeframe, limit: int) -> List[OverviewItem]:
        return await self._aside.get_or_load(
            [timeframe.value, str(limit)],
            lambda: self._inner.execute(timeframe, limit),
        )
