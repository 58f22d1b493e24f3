"""
K 线路由
GET /api/v1/candles   - 区间 K 线查询（from 含、to 不含，RFC3339，UTC）
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from chart_service.container import Container, get_container
from chart_service.domain import Symbol, Timeframe
from chart_service.domain.errors import DomainValidationError
from chart_service.models.response import ApiResponse

router = APIRouter(prefix="/api/v1", tags=["K 线数据"])


def _parse_rfc3339(raw: str, field: str) -> datetime:
    try:
        ts = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise DomainValidationError(f"invalid {field} time: {raw!r}") from exc
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@router.get("/candles", response_model=ApiResponse)
async def get_candles(
    symbol: str = Query(..., description="交易对，如 BTCUSDT"),
    timeframe: str = Query(..., description="周期: 1m / 5m / 15m / 1h / 4h / 1d"),
    from_: str = Query(..., alias="from", description="开始时间（RFC3339）"),
    to: str = Query(..., description="结束时间（RFC3339，不含）"),
    container: Container = Depends(get_container),
):
    """获取区间 K 线"""
    sym = Symbol(symbol)
    tf = Timeframe.parse(timeframe)
    start = _parse_rfc3339(from_, "from")
    end = _parse_rfc3339(to, "to")

    series = await container.candle_series.get_candle_series(sym, tf, start, end)
    return ApiResponse.ok(
        data={
            "symbol": str(sym),
            "timeframe": tf.value,
            "count": len(series),
            "candles": [c.to_dict() for c in series],
        },
        message=f"获取 {sym} {tf} K 线成功",
    )
