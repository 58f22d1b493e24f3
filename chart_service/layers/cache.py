"""
Layer 2 – 缓存层
TTL 键值缓存（Redis → 进程内存降级）以及通用的 Cache-Aside 组件。
缓存只是尽力而为的加速器：任何读写失败都不会暴露给调用方。
"""

import hashlib
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Sequence, Tuple, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError

from chart_service.domain.errors import CacheError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISS = object()


def _make_key(namespace: str, *parts: str) -> str:
    """生成规范化缓存键"""
    raw = ":".join([namespace] + [str(p) for p in parts])
    if len(raw) > 200:
        raw = namespace + ":" + hashlib.md5(raw.encode()).hexdigest()
    return raw


# ── TTL 缓存后端 ──────────────────────────────────────────

class RedisTTLCache:
    """基于 redis.asyncio 的 TTL 缓存，所有 Redis 异常统一转换为 CacheError"""

    backend = "redis"

    def __init__(self, redis: Redis):
        self._redis = redis

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._redis.get(key)
        except RedisError as exc:
            raise CacheError(f"redis GET failed for {key}: {exc}") from exc

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._redis.setex(key, ttl, value)
        except RedisError as exc:
            raise CacheError(f"redis SET failed for {key}: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            raise CacheError(f"redis DEL failed for {key}: {exc}") from exc

    async def stats(self) -> dict:
        try:
            return {"backend": self.backend, "keys": await self._redis.dbsize(), "status": "healthy"}
        except RedisError as exc:
            return {"backend": self.backend, "status": "error", "error": str(exc)}


class MemoryTTLCache:
    """进程内 TTL 缓存，Redis 不可用时的降级后端"""

    backend = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._entries[key] = (value, self._clock() + ttl)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def stats(self) -> dict:
        now = self._clock()
        live = sum(1 for _, expires_at in self._entries.values() if expires_at > now)
        return {"backend": self.backend, "keys": live, "status": "healthy"}

    def __len__(self) -> int:
        return len(self._entries)


# ── Cache-Aside ───────────────────────────────────────────

class CacheAside(Generic[T]):
    """
    通用 Cache-Aside 策略，每个被包装的端口实例化一次

    1. 由语义参数生成确定性的缓存键
    2. 读缓存；命中则反序列化，任意一项损坏都视为整条未命中
    3. 未命中或缓存读失败时调用被包装组件
    4. 调用成功则序列化并按 TTL 回写（空结果同样缓存），写失败忽略
    5. 被包装组件抛出的异常原样向上传播，且不写缓存
    """

    def __init__(
        self,
        cache,
        namespace: str,
        ttl: int,
        serialize: Callable[[T], Any],
        deserialize: Callable[[Any], T],
    ):
        self._cache = cache
        self._namespace = namespace
        self._ttl = ttl
        self._serialize = serialize
        self._deserialize = deserialize

    def key(self, *parts: str) -> str:
        return _make_key(self._namespace, *parts)

    async def get_or_load(self, parts: Sequence[str], loader: Callable[[], Awaitable[T]]) -> T:
        key = self.key(*parts)

        cached = await self._read(key)
        if cached is not _MISS:
            return cached

        value = await loader()
        await self._write(key, value)
        return value

    async def _read(self, key: str):
        try:
            raw = await self._cache.get(key)
        except CacheError as exc:
            logger.warning(f"缓存读取失败，回源处理: {exc}")
            return _MISS
        if raw is None:
            logger.debug(f"缓存未命中: {key}")
            return _MISS
        try:
            value = self._deserialize(json.loads(raw))
        except Exception as exc:
            logger.warning(f"缓存条目损坏，按未命中处理: {key}: {exc}")
            return _MISS
        logger.debug(f"缓存命中: {key}")
        return value

    async def _write(self, key: str, value: T) -> None:
        try:
            payload = json.dumps(self._serialize(value), ensure_ascii=False)
        except (ValueError, TypeError) as exc:
            logger.warning(f"缓存序列化失败，跳过写入: {key}: {exc}")
            return
        try:
            await self._cache.set(key, payload, self._ttl)
            logger.debug(f"缓存写入: {key} (ttl={self._ttl}s)")
        except CacheError as exc:
            logger.warning(f"缓存写入失败: {exc}")
