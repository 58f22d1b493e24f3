"""
K 线数据服务
单交易对用例：区间 K 线查询、交易对详情（最近 N 根 K 线 + 评分统计）。
上游错误原样向调用方抛出。
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from chart_service.domain import Candle, CandleSeries, Symbol, Timeframe
from chart_service.domain.errors import DomainValidationError, SymbolNotFoundError
from chart_service.services.ports import CandleSource, SymbolUniverse
from chart_service.services.ranking_service import SymbolStats, WeightedScorer

logger = logging.getLogger(__name__)


class CandleSeriesService:
    """区间 K 线查询，直接委托给（带缓存的）行情源"""

    def __init__(self, candles: CandleSource):
        self._candles = candles

    async def get_candle_series(
        self, symbol: Symbol, timeframe: Timeframe, start: datetime, end: datetime
    ) -> CandleSeries:
        start, end = _as_utc(start), _as_utc(end)
        if end < start:
            raise DomainValidationError("'to' must not be earlier than 'from'")
        return await self._candles.get_series(symbol, timeframe, start, end)


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass
class SymbolDetail:
    symbol: Symbol
    timeframe: Timeframe
    candles: List[Candle] = field(default_factory=list)
    stats: Optional[SymbolStats] = None

    def to_dict(self) -> dict:
        stats = self.stats or SymbolStats()
        return {
            "symbol": str(self.symbol),
            "timeframe": self.timeframe.value,
            "candles": [c.to_dict() for c in self.candles],
            "stats": {"totalScore": stats.total_score, "scores": dict(stats.scores)},
        }


class SymbolDetailService:
    """交易对详情：必须在交易对列表中；limit ≤ 0 取默认值，超过上限截断"""

    def __init__(
        self,
        candles: CandleSource,
        universe: SymbolUniverse,
        scorer: Optional[WeightedScorer] = None,
        default_limit: int = 100,
        max_limit: int = 1000,
    ):
        self._candles = candles
        self._universe = universe
        self._scorer = scorer
        self._max_limit = max_limit if max_limit > 0 else 1000
        self._default_limit = min(default_limit if default_limit > 0 else 100, self._max_limit)

    def resolve_limit(self, limit: int) -> int:
        if limit <= 0:
            limit = self._default_limit
        return min(limit, self._max_limit)

    async def get_symbol_detail(self, symbol: Symbol, timeframe: Timeframe, limit: int = 0) -> SymbolDetail:
        symbols = await self._universe.symbols()
        if symbol not in symbols:
            raise SymbolNotFoundError(str(symbol))

        series = await self._candles.get_last_n_candles(symbol, timeframe, self.resolve_limit(limit))

        stats = None
        if self._scorer is not None:
            if len(series) >= 2:
                stats = self._scorer.score(series)
            else:
                stats = SymbolStats()

        return SymbolDetail(symbol=symbol, timeframe=timeframe, candles=series.all(), stats=stats)
