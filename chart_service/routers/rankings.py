"""
排名路由
GET /api/rankings   - 按 timeframe 计算全量排名，支持排序模式与分页
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query

from chart_service.container import Container, get_container
from chart_service.domain import Timeframe
from chart_service.models.response import ApiResponse
from chart_service.services.ranking_service import SortMode

router = APIRouter(prefix="/api", tags=["排名"])

_DEFAULT_PAGE_SIZE = 30
_MAX_PAGE_SIZE = 100


def paginate(items: list, page: Optional[int], page_size: Optional[int]) -> dict:
    """page < 1 取 1；pageSize < 1 取默认值并限制在 100 以内；越界页返回空列表"""
    page = page if page and page > 0 else 1
    page_size = page_size if page_size and page_size > 0 else _DEFAULT_PAGE_SIZE
    page_size = min(page_size, _MAX_PAGE_SIZE)

    total_items = len(items)
    total_pages = math.ceil(total_items / page_size) if total_items else 0
    start = min((page - 1) * page_size, total_items)
    return {
        "page": page,
        "pageSize": page_size,
        "totalItems": total_items,
        "totalPages": total_pages,
        "items": items[start:start + page_size],
    }


@router.get("/rankings", response_model=ApiResponse)
async def get_rankings(
    timeframe: str = Query(..., description="周期: 1m / 5m / 15m / 1h / 4h / 1d"),
    sort: str = Query(default="total", description="total / gain / sideways / trend / volume"),
    page: Optional[int] = Query(default=1),
    page_size: Optional[int] = Query(default=_DEFAULT_PAGE_SIZE, alias="pageSize"),
    container: Container = Depends(get_container),
):
    """获取交易对排名（分页）"""
    tf = Timeframe.parse(timeframe)
    mode = SortMode.parse(sort)

    results = await container.rankings.execute(tf, mode)
    paged = paginate(results, page, page_size)
    return ApiResponse.ok(
        data={
            "timeframe": tf.value,
            "sort": mode.value,
            "page": paged["page"],
            "pageSize": paged["pageSize"],
            "totalItems": paged["totalItems"],
            "totalPages": paged["totalPages"],
            "results": [r.to_dict() for r in paged["items"]],
        },
    )
