"""
组件装配
进程启动时把 HTTP 会话、缓存后端、数据源、缓存装饰器和各用例服务各构建一次，
通过构造参数注入；路由通过 get_container() 从 app.state 取用。
"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests
from fastapi import Request
from redis.asyncio import Redis

from chart_service.config import ChartServiceSettings
from chart_service.layers.acquisition import (
    BinanceCandleSource,
    BinanceClient,
    BinanceSymbolUniverse,
    BinanceVolumeSource,
    StaticSymbolUniverse,
    build_http_session,
)
from chart_service.layers.analysis import (
    GainLossScoreCalculator,
    SidewaysConsistencyScoreCalculator,
    TrendPredictabilityScoreCalculator,
    default_calculators,
)
from chart_service.layers.cache import MemoryTTLCache, RedisTTLCache
from chart_service.layers.processing import ProcessingLayer
from chart_service.services.cached import (
    CachedCandleSource,
    CachedOverview,
    CachedRankings,
    CachedSymbolUniverse,
    CachedVolumeSource,
)
from chart_service.services.candle_service import CandleSeriesService, SymbolDetailService
from chart_service.services.overview_service import OverviewService
from chart_service.services.ranking_service import (
    RankingsService,
    ScoreWeight,
    VolumeSortedRanker,
    WeightedRanker,
)

logger = logging.getLogger(__name__)


@dataclass
class Container:
    settings: ChartServiceSettings
    cache: object
    session: Optional[requests.Session]
    candles: object
    universe: object
    volumes: object
    candle_series: CandleSeriesService
    symbol_detail: SymbolDetailService
    rankings: object
    overview: object

    def close(self) -> None:
        if self.session is not None:
            self.session.close()


def build_weights(settings: ChartServiceSettings):
    calcs = default_calculators()
    return [
        ScoreWeight(calcs[GainLossScoreCalculator.name], settings.WEIGHT_GAIN_LOSS),
        ScoreWeight(calcs[TrendPredictabilityScoreCalculator.name], settings.WEIGHT_TREND),
        ScoreWeight(calcs[SidewaysConsistencyScoreCalculator.name], settings.WEIGHT_SIDEWAYS),
    ]


def build_container(
    settings: ChartServiceSettings,
    redis: Optional[Redis] = None,
    session: Optional[requests.Session] = None,
) -> Container:
    """构建全部组件；redis 为 None 时使用进程内缓存"""
    if redis is not None:
        cache = RedisTTLCache(redis)
    else:
        cache = MemoryTTLCache()
    logger.info(f"缓存后端: {cache.backend}")

    session = session or build_http_session(settings.HTTP_MAX_RETRIES)
    client = BinanceClient(session, settings.BINANCE_BASE_URL, timeout=settings.HTTP_TIMEOUT)
    processor = ProcessingLayer()

    candles = CachedCandleSource(
        BinanceCandleSource(client, processor), cache, settings.CANDLE_CACHE_TTL, processor
    )

    if settings.UNIVERSE_STATIC_SYMBOLS:
        raw_universe = StaticSymbolUniverse(settings.UNIVERSE_STATIC_SYMBOLS)
    else:
        raw_universe = BinanceSymbolUniverse(client, settings.QUOTE_ASSET, settings.UNIVERSE_LIMIT)
    universe = CachedSymbolUniverse(raw_universe, cache, settings.UNIVERSE_CACHE_TTL)
    volumes = CachedVolumeSource(BinanceVolumeSource(client), cache, settings.VOLUME_CACHE_TTL)

    ranker = WeightedRanker(build_weights(settings))
    rankings = CachedRankings(
        RankingsService(
            VolumeSortedRanker(universe, volumes, ranker),
            candles,
            lookback=settings.RANKING_LOOKBACK,
            max_workers=settings.OVERVIEW_MAX_WORKERS,
        ),
        cache,
        settings.RANKINGS_CACHE_TTL,
    )
    overview = CachedOverview(
        OverviewService(
            rankings,
            candles,
            precision=settings.OVERVIEW_SPARKLINE_PRECISION,
            max_workers=settings.OVERVIEW_MAX_WORKERS,
        ),
        cache,
        settings.OVERVIEW_CACHE_TTL,
    )

    return Container(
        settings=settings,
        cache=cache,
        session=session,
        candles=candles,
        universe=universe,
        volumes=volumes,
        candle_series=CandleSeriesService(candles),
        symbol_detail=SymbolDetailService(
            candles,
            universe,
            scorer=ranker.scorer,
            default_limit=settings.SYMBOL_DETAIL_DEFAULT_LIMIT,
            max_limit=settings.SYMBOL_DETAIL_MAX_LIMIT,
        ),
        rankings=rankings,
        overview=overview,
    )


def get_container(request: Request) -> Container:
    """FastAPI 依赖：取出启动时装配好的容器"""
    return request.app.state.container
