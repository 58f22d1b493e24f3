"""
概览路由
GET /api/overview   - 排名前 limit 个交易对及其收盘价走势
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from chart_service.container import Container, get_container
from chart_service.domain import Timeframe
from chart_service.domain.errors import DomainValidationError
from chart_service.models.response import ApiResponse

router = APIRouter(prefix="/api", tags=["概览"])


@router.get("/overview", response_model=ApiResponse)
async def get_overview(
    timeframe: str = Query(..., description="周期: 1m / 5m / 15m / 1h / 4h / 1d"),
    limit: Optional[int] = Query(default=None, description="返回数量，默认 10"),
    container: Container = Depends(get_container),
):
    """获取概览"""
    tf = Timeframe.parse(timeframe)
    if limit is None:
        limit = container.settings.OVERVIEW_DEFAULT_LIMIT
    if limit <= 0:
        raise DomainValidationError("invalid limit")

    items = await container.overview.execute(tf, limit)
    return ApiResponse.ok(
        data={
            "timeframe": tf.value,
            "count": len(items),
            "results": [i.to_dict() for i in items],
        },
    )
