"""
端口定义
用例服务只依赖这些接口；Binance 适配器、缓存装饰器和测试替身都实现同一组方法。
"""

from datetime import datetime
from typing import Dict, List, Optional, Protocol, Union, runtime_checkable

from chart_service.domain import CandleSeries, Symbol, Timeframe


@runtime_checkable
class CandleSource(Protocol):
    async def get_series(
        self, symbol: Symbol, timeframe: Timeframe, start: datetime, end: datetime
    ) -> CandleSeries:
        """区间 [start, end) 内的 K 线，时间均为 UTC"""
        ...

    async def get_last_n_candles(self, symbol: Symbol, timeframe: Timeframe, n: int) -> CandleSeries:
        """最多 n 根已收盘 K 线，按时间升序，不含正在进行中的 K 线"""
        ...


@runtime_checkable
class SymbolUniverse(Protocol):
    async def symbols(self) -> List[Symbol]:
        ...


@runtime_checkable
class VolumeSource(Protocol):
    async def volumes(self) -> Dict[str, float]:
        ...


@runtime_checkable
class TTLCache(Protocol):
    """读写失败一律抛出 CacheError；未命中返回 None"""

    async def get(self, key: str) -> Optional[Union[str, bytes]]:
        ...

    async def set(self, key: str, value: str, ttl: int) -> None:
        ...
