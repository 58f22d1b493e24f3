"""K 线周期（值对象）"""

from datetime import datetime, timedelta, timezone
from enum import Enum

from chart_service.domain.errors import InvalidTimeframeError


class Timeframe(str, Enum):
    """固定集合 {1m, 5m, 15m, 1h, 4h, 1d}，大小写不敏感"""

    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        raise InvalidTimeframeError(f"unsupported timeframe: {value!r}")

    @classmethod
    def parse(cls, raw: str) -> "Timeframe":
        if raw is None or (isinstance(raw, str) and raw.strip() == ""):
            raise InvalidTimeframeError("timeframe cannot be empty")
        return cls(raw)

    @property
    def duration(self) -> timedelta:
        return _DURATIONS[self]

    @property
    def seconds(self) -> int:
        return int(self.duration.total_seconds())

    def floor(self, ts: datetime) -> datetime:
        """把时间向下取整到本周期的 UTC 边界"""
        epoch = int(ts.timestamp())
        return datetime.fromtimestamp(epoch - epoch % self.seconds, tz=timezone.utc)

    def __str__(self) -> str:
        return self.value


_DURATIONS = {
    Timeframe.M1: timedelta(minutes=1),
    Timeframe.M5: timedelta(minutes=5),
    Timeframe.M15: timedelta(minutes=15),
    Timeframe.H1: timedelta(hours=1),
    Timeframe.H4: timedelta(hours=4),
    Timeframe.D1: timedelta(days=1),
}
