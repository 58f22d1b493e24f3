"""K 线序列：单一 Symbol + Timeframe、按时间升序、不可变、可检测缺口"""

from typing import Iterable, Iterator, List, Tuple

from chart_service.domain.candle import Candle
from chart_service.domain.errors import (
    DuplicateTimestampError,
    EmptySeriesError,
    SeriesMismatchError,
)
from chart_service.domain.symbol import Symbol
from chart_service.domain.timeframe import Timeframe


class CandleSeries:
    """
    不可变 K 线序列

    - 所有 K 线必须与序列的 symbol / timeframe 一致
    - 时间戳重复（按身份相等判断，不看数值）直接拒绝
    - 内部保存排序后的副本，输入顺序无关
    - 空序列合法，表示“暂无数据”
    """

    __slots__ = ("_symbol", "_timeframe", "_candles")

    def __init__(self, symbol: Symbol, timeframe: Timeframe, candles: Iterable[Candle] = ()):
        candles = list(candles)
        for c in candles:
            if c.symbol != symbol:
                raise SeriesMismatchError(
                    f"candle symbol {c.symbol} does not match series symbol {symbol}"
                )
            if c.timeframe != timeframe:
                raise SeriesMismatchError(
                    f"candle timeframe {c.timeframe} does not match series timeframe {timeframe}"
                )

        seen = set()
        for c in candles:
            if c in seen:
                raise DuplicateTimestampError(f"duplicate timestamp: {c.timestamp.isoformat()}")
            seen.add(c)

        self._symbol = symbol
        self._timeframe = timeframe
        self._candles: Tuple[Candle, ...] = tuple(sorted(candles, key=lambda c: c.timestamp))

    @classmethod
    def empty(cls, symbol: Symbol, timeframe: Timeframe) -> "CandleSeries":
        return cls(symbol, timeframe, ())

    # ── 访问器 ────────────────────────────────────────────

    @property
    def symbol(self) -> Symbol:
        return self._symbol

    @property
    def timeframe(self) -> Timeframe:
        return self._timeframe

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(self._candles)

    def at(self, index: int) -> Candle:
        if index < 0 or index >= len(self._candles):
            raise IndexError(
                f"index {index} out of bounds (series length: {len(self._candles)})"
            )
        return self._candles[index]

    __getitem__ = at

    def first(self) -> Candle:
        if not self._candles:
            raise EmptySeriesError("cannot get first candle from empty series")
        return self._candles[0]

    def last(self) -> Candle:
        if not self._candles:
            raise EmptySeriesError("cannot get last candle from empty series")
        return self._candles[-1]

    def all(self) -> List[Candle]:
        """返回防御性副本"""
        return list(self._candles)

    def closes(self) -> List[float]:
        return [c.close for c in self._candles]

    def has_gap_after(self, index: int) -> bool:
        """下一根 K 线的时间不等于当前时间 + 周期时长即视为缺口；没有下一根时返回 False"""
        if index < 0 or index >= len(self._candles) - 1:
            return False
        current, nxt = self._candles[index], self._candles[index + 1]
        return nxt.timestamp != current.timestamp + self._timeframe.duration

    # ── 比较 ──────────────────────────────────────────────

    def __eq__(self, other):
        if not isinstance(other, CandleSeries):
            return NotImplemented
        return (
            self._symbol == other._symbol
            and self._timeframe == other._timeframe
            and len(self._candles) == len(other._candles)
            and all(a.same_values(b) for a, b in zip(self._candles, other._candles))
        )

    __hash__ = None

    def __repr__(self) -> str:
        return f"CandleSeries({self._symbol}, {self._timeframe}, n={len(self._candles)})"
