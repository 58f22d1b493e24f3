"""
Layer 3 – 数据处理层
把上游原始 K 线行（Binance kline 数组）转换为经过校验的 CandleSeries。
不做任何静默修正：任何一行非法都会让整次转换失败。
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

import pandas as pd

from chart_service.domain import Candle, CandleSeries, Symbol, Timeframe
from chart_service.domain.errors import UpstreamError

logger = logging.getLogger(__name__)

# Binance kline 数组的前 7 列
KLINE_COLUMNS = ["open_time", "open", "high", "low", "close", "volume", "close_time"]
_NUMERIC_COLS = ["open", "high", "low", "close", "volume"]


class ProcessingLayer:
    """数据处理层：原始行 → DataFrame → 领域对象"""

    def klines_to_frame(self, rows: Sequence[Sequence[Any]]) -> pd.DataFrame:
        """
        将 kline 数组标准化为 DataFrame

        标准列：open_time, open, high, low, close, volume, close_time（时间为毫秒）
        """
        if not rows:
            return pd.DataFrame(columns=KLINE_COLUMNS)

        if any(len(row) < len(KLINE_COLUMNS) for row in rows):
            raise UpstreamError(f"kline row must have at least {len(KLINE_COLUMNS)} fields")

        df = pd.DataFrame([list(row[: len(KLINE_COLUMNS)]) for row in rows], columns=KLINE_COLUMNS)

        for col in _NUMERIC_COLS + ["open_time", "close_time"]:
            df[col] = pd.to_numeric(df[col], errors="coerce")
        if df.isna().any().any():
            raise UpstreamError("kline payload contains non-numeric fields")

        df["open_time"] = df["open_time"].astype("int64")
        df["close_time"] = df["close_time"].astype("int64")
        return df

    def drop_incomplete(self, df: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
        """去掉尚未收盘（close_time 不早于当前时间）的 K 线"""
        if df.empty:
            return df
        now = now or datetime.now(tz=timezone.utc)
        now_ms = int(now.timestamp() * 1000)
        return df[df["close_time"] < now_ms].reset_index(drop=True)

    def tail(self, df: pd.DataFrame, n: int) -> pd.DataFrame:
        if df.empty or n <= 0:
            return df.iloc[0:0]
        return df.sort_values("open_time").tail(n).reset_index(drop=True)

    def to_series(self, df: pd.DataFrame, symbol: Symbol, timeframe: Timeframe) -> CandleSeries:
        """DataFrame 转换为 CandleSeries（逐行执行 Candle 不变量校验）"""
        candles: List[Candle] = []
        for row in df.itertuples(index=False):
            candles.append(
                Candle(
                    symbol=symbol,
                    timeframe=timeframe,
                    timestamp=datetime.fromtimestamp(row.open_time / 1000, tz=timezone.utc),
                    open=float(row.open),
                    high=float(row.high),
                    low=float(row.low),
                    close=float(row.close),
                    volume=float(row.volume),
                )
            )
        return CandleSeries(symbol, timeframe, candles)

    # ── 缓存载荷 ──────────────────────────────────────────

    def series_to_records(self, series: CandleSeries) -> List[dict]:
        return [c.to_dict() for c in series]

    def records_to_series(
        self, records: Sequence[dict], symbol: Symbol, timeframe: Timeframe
    ) -> CandleSeries:
        """缓存载荷还原；任何一条记录非法都会抛出异常（由调用方按未命中处理）"""
        if not isinstance(records, list):
            raise TypeError("cached candle payload must be a list")
        candles = [
            Candle(
                symbol=symbol,
                timeframe=timeframe,
                timestamp=_parse_utc(item["timestamp"]),
                open=float(item["open"]),
                high=float(item["high"]),
                low=float(item["low"]),
                close=float(item["close"]),
                volume=float(item["volume"]),
            )
            for item in records
        ]
        return CandleSeries(symbol, timeframe, candles)


def _parse_utc(raw: str) -> datetime:
    ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        raise ValueError(f"timestamp without timezone: {raw}")
    return ts.astimezone(timezone.utc)
