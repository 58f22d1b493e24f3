"""
缓存管理路由
GET  /api/cache/stats     - 缓存统计
"""

from fastapi import APIRouter, Depends

from chart_service.container import Container, get_container
from chart_service.models.response import ApiResponse

router = APIRouter(prefix="/api/cache", tags=["缓存管理"])


@router.get("/stats", response_model=ApiResponse)
async def cache_stats(container: Container = Depends(get_container)):
    """获取缓存统计信息（后端类型与键数量）"""
    stats = await container.cache.stats()
    return ApiResponse.ok(data=stats)
