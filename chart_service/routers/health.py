"""健康检查路由"""

import time

from fastapi import APIRouter, Request

from chart_service import __version__
from chart_service import db

router = APIRouter(tags=["健康检查"])


@router.get("/health")
async def health():
    """服务健康检查"""
    cache_health = await db.check_health()
    return {
        "success": True,
        "data": {
            "status": "ok",
            "version": __version__,
            "timestamp": int(time.time()),
            "service": "Chart Ranking Service",
            "databases": cache_health,
        },
        "message": "服务运行正常",
    }


@router.get("/healthz")
async def healthz():
    """Kubernetes liveness probe"""
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request):
    """Kubernetes readiness probe：组件装配完成即就绪"""
    return {"ready": getattr(request.app.state, "container", None) is not None}
