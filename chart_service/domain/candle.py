"""单根 OHLCV K 线（值对象，构造时校验全部不变量）"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from chart_service.domain.errors import (
    MisalignedTimestampError,
    NegativeValueError,
    NonUTCTimestampError,
    PriceRangeError,
)
from chart_service.domain.symbol import Symbol
from chart_service.domain.timeframe import Timeframe

# (分钟取模, 小时取模)：minute % 60 == 0 即整点，hour % 24 == 0 即零点
_ALIGNMENT = {
    Timeframe.M1: (1, 1),
    Timeframe.M5: (5, 1),
    Timeframe.M15: (15, 1),
    Timeframe.H1: (60, 1),
    Timeframe.H4: (60, 4),
    Timeframe.D1: (60, 24),
}


def _is_utc(ts: datetime) -> bool:
    return (
        ts.tzinfo is not None
        and ts.utcoffset() == timedelta(0)
        and ts.tzname() == "UTC"
    )


@dataclass(frozen=True, eq=False)
class Candle:
    """
    K 线值对象

    校验顺序：UTC 时间 → 非负 → 高低价关系 → 周期对齐，每一步对应独立的异常类型。
    相等性只看 (symbol, timeframe, timestamp)，用于去重，而不是比较数值。
    """

    symbol: Symbol
    timeframe: Timeframe
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    def __post_init__(self):
        ts = self.timestamp
        if not isinstance(ts, datetime) or not _is_utc(ts):
            raise NonUTCTimestampError("timestamp must be in UTC")
        object.__setattr__(self, "timestamp", ts.astimezone(timezone.utc))

        for value in (self.open, self.high, self.low, self.close, self.volume):
            if not value >= 0:
                raise NegativeValueError("prices and volume must be non-negative")

        if self.high < self.open or self.high < self.close:
            raise PriceRangeError("high must be >= max(open, close)")
        if self.low > self.open or self.low > self.close:
            raise PriceRangeError("low must be <= min(open, close)")
        if self.high < self.low:
            raise PriceRangeError("high must be >= low")

        self._check_alignment()

    def _check_alignment(self):
        tf, ts = self.timeframe, self.timestamp
        minute_mod, hour_mod = _ALIGNMENT[tf]
        if ts.second != 0 or ts.microsecond != 0:
            raise MisalignedTimestampError(f"{tf} timeframe requires second == 0")
        if ts.minute % minute_mod != 0:
            if minute_mod == 60:
                raise MisalignedTimestampError(f"{tf} timeframe requires minute == 0")
            raise MisalignedTimestampError(
                f"{tf} timeframe requires minute divisible by {minute_mod}"
            )
        if ts.hour % hour_mod != 0:
            if hour_mod == 24:
                raise MisalignedTimestampError(f"{tf} timeframe requires hour == 0")
            raise MisalignedTimestampError(
                f"{tf} timeframe requires hour divisible by {hour_mod}"
            )

    # ── 身份 ──────────────────────────────────────────────

    @property
    def identity(self):
        return (self.symbol, self.timeframe, self.timestamp)

    def __eq__(self, other):
        if not isinstance(other, Candle):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self):
        return hash(self.identity)

    def same_values(self, other: "Candle") -> bool:
        """身份与 OHLCV 全部一致"""
        return self == other and (
            (self.open, self.high, self.low, self.close, self.volume)
            == (other.open, other.high, other.low, other.close, other.volume)
        )

    # ── 派生分类 ──────────────────────────────────────────

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    @property
    def is_doji(self) -> bool:
        return self.close == self.open

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }
