"""
Layer 1 – 数据获取层
从 Binance 公共 REST 接口拉取 K 线、交易对列表和 24h 成交额，
统一转换为领域对象后向上层提供标准端口实现。

阻塞式 HTTP 请求通过 asyncio.to_thread 放到工作线程执行，不阻塞事件循环。
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from chart_service import __version__
from chart_service.domain import CandleSeries, Symbol, Timeframe
from chart_service.domain.errors import DomainValidationError, UpstreamError
from chart_service.layers.processing import ProcessingLayer

logger = logging.getLogger(__name__)

_MAX_KLINES_PER_REQUEST = 1000

# ── 静态交易对列表（按市值挑选的 USDT 交易对） ────────────
DEFAULT_STATIC_SYMBOLS = [
    "BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT",
    "ADAUSDT", "DOGEUSDT", "AVAXUSDT", "LINKUSDT", "DOTUSDT",
    "MATICUSDT", "TRXUSDT", "LTCUSDT", "ATOMUSDT", "UNIUSDT",
]


def build_http_session(max_retries: int = 3) -> requests.Session:
    """共享 HTTP 会话：429 / 5xx 自动指数退避重试"""
    sess = requests.Session()
    sess.headers.update({
        "User-Agent": f"chart-service/{__version__}",
        "Accept": "application/json",
    })
    retry = Retry(
        total=max_retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    sess.mount("https://", HTTPAdapter(max_retries=retry))
    sess.mount("http://", HTTPAdapter(max_retries=retry))
    return sess


def _to_ms(ts: datetime) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(ts.timestamp() * 1000)


class BinanceClient:
    """Binance REST 基础客户端，所有失败统一转换为 UpstreamError"""

    def __init__(self, session: requests.Session, base_url: str, timeout: float = 10.0):
        self._sess = session
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            resp = self._sess.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise UpstreamError(f"binance: request to {path} failed: {exc}") from exc
        if resp.status_code != 200:
            raise UpstreamError(f"binance: {path} http {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(f"binance: invalid JSON from {path}") from exc


# ── K 线 ──────────────────────────────────────────────────

class BinanceCandleSource:
    """Candle Source 端口实现（/klines）"""

    def __init__(
        self,
        client: BinanceClient,
        processor: ProcessingLayer,
        clock: Callable[[], datetime] = lambda: datetime.now(tz=timezone.utc),
    ):
        self._client = client
        self._proc = processor
        self._clock = clock

    async def get_series(
        self, symbol: Symbol, timeframe: Timeframe, start: datetime, end: datetime
    ) -> CandleSeries:
        """区间 [start, end) 内的 K 线"""
        return await asyncio.to_thread(self._fetch_series, symbol, timeframe, start, end)

    async def get_last_n_candles(self, symbol: Symbol, timeframe: Timeframe, n: int) -> CandleSeries:
        """最近 n 根已收盘 K 线，按时间升序"""
        return await asyncio.to_thread(self._fetch_last_n, symbol, timeframe, n)

    def _fetch_series(self, symbol, timeframe, start, end) -> CandleSeries:
        start_ms, end_ms = _to_ms(start), _to_ms(end)
        if end_ms <= start_ms:
            return CandleSeries.empty(symbol, timeframe)

        step_ms = timeframe.seconds * 1000
        rows: List[list] = []
        cursor = start_ms
        while cursor < end_ms:
            batch = self._klines(symbol, timeframe, {
                "startTime": cursor,
                "endTime": end_ms - 1,
                "limit": _MAX_KLINES_PER_REQUEST,
            })
            if not batch:
                break
            rows.extend(batch)
            if len(batch) < _MAX_KLINES_PER_REQUEST:
                break
            cursor = int(batch[-1][0]) + step_ms

        logger.debug(f"{symbol} {timeframe} 区间 K 线 {len(rows)} 根")
        return self._proc.to_series(self._proc.klines_to_frame(rows), symbol, timeframe)

    def _fetch_last_n(self, symbol, timeframe, n: int) -> CandleSeries:
        if n <= 0:
            return CandleSeries.empty(symbol, timeframe)
        rows = self._klines(symbol, timeframe, {"limit": min(n + 1, _MAX_KLINES_PER_REQUEST)})
        df = self._proc.klines_to_frame(rows)
        df = self._proc.drop_incomplete(df, now=self._clock())
        df = self._proc.tail(df, n)
        return self._proc.to_series(df, symbol, timeframe)

    def _klines(self, symbol: Symbol, timeframe: Timeframe, extra: Dict[str, Any]) -> list:
        params = {"symbol": str(symbol), "interval": timeframe.value}
        params.update(extra)
        payload = self._client.get_json("/klines", params=params)
        if not isinstance(payload, list):
            raise UpstreamError("binance: klines payload must be an array")
        return payload


# ── 交易对列表 ────────────────────────────────────────────

class BinanceSymbolUniverse:
    """Symbol Universe 端口实现（/exchangeInfo）"""

    def __init__(self, client: BinanceClient, quote_asset: str = "USDT", limit: int = 50):
        self._client = client
        self._quote = quote_asset.upper()
        self._limit = limit

    @property
    def name(self) -> str:
        return f"binance:{self._quote}:{self._limit}"

    async def symbols(self) -> List[Symbol]:
        return await asyncio.to_thread(self._fetch)

    def _fetch(self) -> List[Symbol]:
        info = self._client.get_json("/exchangeInfo")
        if not isinstance(info, dict):
            raise UpstreamError("binance: exchangeInfo payload must be an object")
        syms = []
        for item in info.get("symbols", []):
            if (
                item.get("quoteAsset") != self._quote
                or item.get("status") != "TRADING"
                or not item.get("isSpotTradingAllowed")
            ):
                continue
            try:
                syms.append(Symbol(item.get("symbol", "")))
            except DomainValidationError:
                logger.debug(f"跳过非法交易对: {item.get('symbol')!r}")
        syms.sort()
        if self._limit > 0:
            syms = syms[: self._limit]
        logger.info(f"交易对列表获取成功（来源：binance），共 {len(syms)} 个")
        return syms


class StaticSymbolUniverse:
    """固定交易对列表，按字母序返回"""

    def __init__(self, symbols: Iterable[str] = DEFAULT_STATIC_SYMBOLS):
        self._symbols = sorted(Symbol(s) for s in symbols)

    @property
    def name(self) -> str:
        return f"static:{len(self._symbols)}"

    async def symbols(self) -> List[Symbol]:
        return list(self._symbols)


# ── 24h 成交额 ────────────────────────────────────────────

class BinanceVolumeSource:
    """Volume 端口实现（/ticker/24hr 的 quoteVolume）"""

    name = "binance:24h"

    def __init__(self, client: BinanceClient):
        self._client = client

    async def volumes(self) -> Dict[str, float]:
        return await asyncio.to_thread(self._fetch)

    def _fetch(self) -> Dict[str, float]:
        tickers = self._client.get_json("/ticker/24hr")
        if not isinstance(tickers, list):
            raise UpstreamError("binance: ticker payload must be an array")
        if not tickers:
            return {}
        df = pd.DataFrame(tickers)
        if "symbol" not in df.columns or "quoteVolume" not in df.columns:
            raise UpstreamError("binance: ticker payload missing symbol/quoteVolume")
        df["quoteVolume"] = pd.to_numeric(df["quoteVolume"], errors="coerce")
        df = df.dropna(subset=["symbol", "quoteVolume"])
        vols = {str(sym): float(vol) for sym, vol in zip(df["symbol"], df["quoteVolume"])}
        logger.debug(f"24h 成交额获取成功，共 {len(vols)} 条")
        return vols
