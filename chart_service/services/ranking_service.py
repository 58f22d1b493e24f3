"""
排名服务
加权评分 → 确定性排序；按成交额预筛选的排名策略；按客户端选择的指标重排。
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Mapping, Sequence

from chart_service.domain import CandleSeries, Symbol, Timeframe
from chart_service.layers.analysis import (
    GainLossScoreCalculator,
    ScoreCalculator,
    SidewaysConsistencyScoreCalculator,
    TrendPredictabilityScoreCalculator,
)
from chart_service.services.fanout import bounded_fan_out
from chart_service.services.ports import CandleSource, SymbolUniverse, VolumeSource

logger = logging.getLogger(__name__)


# ── 数据结构 ──────────────────────────────────────────────

@dataclass(frozen=True)
class ScoreWeight:
    calculator: ScoreCalculator
    weight: float


@dataclass
class SymbolStats:
    total_score: float = 0.0
    scores: Dict[str, float] = field(default_factory=dict)


@dataclass
class RankedSymbol:
    symbol: Symbol
    total_score: float
    scores: Dict[str, float]


@dataclass
class RankedResult:
    symbol: Symbol
    total_score: float
    scores: Dict[str, float]
    volume: float = 0.0

    def to_dict(self) -> dict:
        return {
            "symbol": str(self.symbol),
            "totalScore": self.total_score,
            "scores": dict(self.scores),
            "volume": self.volume,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RankedResult":
        return cls(
            symbol=Symbol(data["symbol"]),
            total_score=float(data["totalScore"]),
            scores={str(k): float(v) for k, v in data["scores"].items()},
            volume=float(data["volume"]),
        )


def _by_score_then_symbol(total: float, symbol: Symbol):
    return (-total, symbol.value)


# ── 加权评分 ──────────────────────────────────────────────

class WeightedScorer:
    """对单个序列计算加权总分；权重为 0 的评分器既不计算也不出现在结果里"""

    def __init__(self, weights: Sequence[ScoreWeight]):
        self.weights = list(weights)

    def score(self, series: CandleSeries) -> SymbolStats:
        stats = SymbolStats()
        for w in self.weights:
            if w.weight == 0:
                continue
            try:
                value = w.calculator.score(series)
            except Exception:
                logger.warning(f"评分器 {w.calculator.name} 计算 {series.symbol} 失败")
                raise
            stats.scores[w.calculator.name] = value
            stats.total_score += value * w.weight
        return stats


class WeightedRanker:
    """按加权总分降序排列，总分相同按交易对升序；任一评分失败则整个排名失败"""

    def __init__(self, weights: Sequence[ScoreWeight]):
        self.scorer = WeightedScorer(weights)

    def rank(self, series: Mapping[Symbol, CandleSeries]) -> List[RankedSymbol]:
        ranked = []
        for symbol, candles in series.items():
            stats = self.scorer.score(candles)
            ranked.append(RankedSymbol(symbol=symbol, total_score=stats.total_score, scores=stats.scores))
        ranked.sort(key=lambda r: _by_score_then_symbol(r.total_score, r.symbol))
        return ranked


class VolumeSortedRanker:
    """
    先取交易对列表与成交额的交集，按成交额降序（同额按交易对升序）预排，
    再交给加权排名；预排不会改变加权排名自身的比较规则。
    """

    def __init__(self, universe: SymbolUniverse, volumes: VolumeSource, ranker: WeightedRanker):
        self.universe = universe
        self.volumes = volumes
        self.ranker = ranker

    @staticmethod
    def candidates(symbols: Sequence[Symbol], volumes: Mapping[str, float]) -> List[Symbol]:
        filtered = [s for s in symbols if s.value in volumes]
        filtered.sort(key=lambda s: (-volumes[s.value], s.value))
        return filtered

    async def rank(self, series: Mapping[Symbol, CandleSeries]) -> List[RankedSymbol]:
        symbols = await self.universe.symbols()
        volumes = await self.volumes.volumes()
        ordered = {s: series[s] for s in self.candidates(symbols, volumes) if s in series}
        return self.ranker.rank(ordered)


# ── 排序模式 ──────────────────────────────────────────────

class SortMode(str, Enum):
    TOTAL = "total"
    GAIN = "gain"
    SIDEWAYS = "sideways"
    TREND = "trend"
    VOLUME = "volume"

    @classmethod
    def parse(cls, raw) -> "SortMode":
        """未知或空值一律回退为 total"""
        for mode in cls:
            if mode.value == raw:
                return mode
        return cls.TOTAL


SCORE_KEY_FOR_SORT = {
    SortMode.GAIN: GainLossScoreCalculator.name,
    SortMode.SIDEWAYS: SidewaysConsistencyScoreCalculator.name,
    SortMode.TREND: TrendPredictabilityScoreCalculator.name,
}


def sort_value(result: RankedResult, mode: SortMode) -> float:
    if mode == SortMode.VOLUME:
        return result.volume
    key = SCORE_KEY_FOR_SORT.get(mode)
    if key is None:
        return result.total_score
    return result.scores.get(key, 0.0)


def sort_results(results: List[RankedResult], mode: SortMode) -> List[RankedResult]:
    """稳定重排（不重新评分）：所选指标降序，交易对升序"""
    return sorted(results, key=lambda r: (-sort_value(r, mode), r.symbol.value))


# ── 排名用例 ──────────────────────────────────────────────

class RankingsService:
    """
    全量排名用例：交易对列表 → 成交额 → 逐个拉取 K 线（失败跳过）→ 评分排名 → 按模式排序
    """

    def __init__(
        self,
        ranker: VolumeSortedRanker,
        candles: CandleSource,
        lookback: int = 100,
        max_workers: int = 5,
        clock: Callable[[], datetime] = lambda: datetime.now(tz=timezone.utc),
    ):
        self.ranker = ranker
        self._candles = candles
        self._lookback = lookback
        self._max_workers = max_workers
        self._clock = clock

    async def execute(self, timeframe: Timeframe, sort: SortMode = SortMode.TOTAL) -> List[RankedResult]:
        symbols = await self.ranker.universe.symbols()
        if not symbols:
            return []
        volumes = await self.ranker.volumes.volumes()

        series = await self._load_series(VolumeSortedRanker.candidates(symbols, volumes), timeframe)
        ranked = await self.ranker.rank(series)

        results = [
            RankedResult(
                symbol=r.symbol,
                total_score=r.total_score,
                scores=r.scores,
                volume=volumes.get(r.symbol.value, 0.0),
            )
            for r in ranked
        ]
        logger.info(f"排名完成 timeframe={timeframe} sort={sort.value}，共 {len(results)} 个交易对")
        return sort_results(results, sort)

    async def _load_series(self, symbols: List[Symbol], timeframe: Timeframe) -> Dict[Symbol, CandleSeries]:
        end = timeframe.floor(self._clock())
        start = end - timeframe.duration * self._lookback

        async def fetch(symbol: Symbol) -> CandleSeries:
            return await self._candles.get_series(symbol, timeframe, start, end)

        outcomes = await bounded_fan_out(symbols, fetch, self._max_workers)
        series = {}
        for outcome in outcomes:
            if outcome.ok and len(outcome.value) > 0:
                series[outcome.item] = outcome.value
            elif outcome.ok:
                logger.debug(f"跳过 {outcome.item}：暂无 K 线数据")
            else:
                logger.warning(f"跳过 {outcome.item}：K 线获取失败: {outcome.error}")
        return series
