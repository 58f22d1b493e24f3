"""有界并发扇出：最多 max_workers 个任务同时在途，结果按输入下标回填"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


@dataclass
class FanOutResult(Generic[K, V]):
    item: K
    value: Optional[V] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def bounded_fan_out(
    items: Sequence[K],
    worker: Callable[[K], Awaitable[V]],
    max_workers: int,
) -> List[FanOutResult]:
    """
    并发执行 worker(item)，单项失败只记录在对应结果里，不影响其他项

    外部取消只会停止等待；已经在工作线程里跑的请求不会被强行中断。
    """
    results: List[Any] = [None] * len(items)
    sem = asyncio.Semaphore(max(1, max_workers))

    async def _run(index: int, item: K) -> None:
        async with sem:
            try:
                value = await worker(item)
            except Exception as exc:
                results[index] = FanOutResult(item=item, error=exc)
                return
        # 单事件循环内按下标写入，结果顺序与输入一致，和完成先后无关
        results[index] = FanOutResult(item=item, value=value)

    await asyncio.gather(*(_run(i, item) for i, item in enumerate(items)))
    return results
