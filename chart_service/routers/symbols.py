"""
交易对详情路由
GET /api/symbol/{symbol}   - 最近 N 根已收盘 K 线及评分统计
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from chart_service.container import Container, get_container
from chart_service.domain import Symbol, Timeframe
from chart_service.models.response import ApiResponse

router = APIRouter(prefix="/api/symbol", tags=["交易对详情"])


@router.get("/{symbol}", response_model=ApiResponse)
async def get_symbol_detail(
    symbol: str,
    timeframe: str = Query(..., description="周期: 1m / 5m / 15m / 1h / 4h / 1d"),
    limit: Optional[int] = Query(default=None, description="K 线数量，默认 100，最大 1000"),
    container: Container = Depends(get_container),
):
    """获取交易对详情"""
    sym = Symbol(symbol)
    tf = Timeframe.parse(timeframe)

    detail = await container.symbol_detail.get_symbol_detail(sym, tf, limit or 0)
    return ApiResponse.ok(data=detail.to_dict())
