"""
概览服务
对排名靠前的交易对并发拉取最近 P 根已收盘 K 线，生成收盘价走势缩略图（sparkline）。
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from chart_service.domain import Symbol, Timeframe
from chart_service.domain.errors import NoCandlesError
from chart_service.services.fanout import bounded_fan_out
from chart_service.services.ports import CandleSource
from chart_service.services.ranking_service import RankedResult, SortMode

logger = logging.getLogger(__name__)


@dataclass
class OverviewItem:
    symbol: Symbol
    total_score: float
    sparkline: List[float] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "symbol": str(self.symbol),
            "totalScore": self.total_score,
            "sparkline": list(self.sparkline),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OverviewItem":
        return cls(
            symbol=Symbol(data["symbol"]),
            total_score=float(data["totalScore"]),
            sparkline=[float(v) for v in data["sparkline"]],
        )


class OverviewService:
    """概览用例：排名（按 total）→ 截取 limit → 有界并发生成 sparkline"""

    def __init__(self, rankings, candles: CandleSource, precision: int = 30, max_workers: int = 5):
        self._rankings = rankings
        self._candles = candles
        self.precision = precision if precision > 0 else 30
        self.max_workers = max_workers if max_workers > 0 else 5

    async def execute(self, timeframe: Timeframe, limit: int) -> List[OverviewItem]:
        ranked = await self._rankings.execute(timeframe, SortMode.TOTAL)
        if limit > 0:
            ranked = ranked[:limit]
        if not ranked:
            return []
        return await self.aggregate(ranked, timeframe)

    async def aggregate(self, ranked: Sequence[RankedResult], timeframe: Timeframe) -> List[OverviewItem]:
        """
        单个交易对失败只记录日志并跳过；全部失败时抛出 NoCandlesError。
        返回结果保持原排名顺序。
        """

        async def fetch(item: RankedResult):
            return await self._candles.get_last_n_candles(item.symbol, timeframe, self.precision)

        outcomes = await bounded_fan_out(list(ranked), fetch, self.max_workers)

        items = []
        for outcome in outcomes:
            rs = outcome.item
            if not outcome.ok:
                logger.warning(f"获取 {rs.symbol} K 线失败，已跳过: {outcome.error}")
                continue
            if len(outcome.value) == 0:
                logger.warning(f"{rs.symbol} 没有可用的 K 线，已跳过")
                continue
            items.append(OverviewItem(
                symbol=rs.symbol,
                total_score=rs.total_score,
                sparkline=outcome.value.closes(),
            ))

        if ranked and not items:
            raise NoCandlesError()
        return items
