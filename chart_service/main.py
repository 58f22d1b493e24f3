"""
加密货币行情排名服务
独立 FastAPI 应用程序入口

启动方式:
    uvicorn chart_service.main:app --host 0.0.0.0 --port 8080
    python -m chart_service.main
"""

import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chart_service import __version__, db
from chart_service.config import settings
from chart_service.container import build_container
from chart_service.domain.errors import ChartServiceError, DomainValidationError, SymbolNotFoundError
from chart_service.models.response import ApiResponse
from chart_service.routers import cache, candles, health, overview, rankings, symbols

# ── 日志配置 ──────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── 生命周期管理 ──────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用启动/关闭生命周期钩子"""
    logger.info("=" * 60)
    logger.info(f"🚀 Chart Ranking Service v{__version__} 启动中")
    logger.info(f"   Binance   : {settings.BINANCE_BASE_URL}")
    logger.info(f"   Redis     : {settings.REDIS_HOST}:{settings.REDIS_PORT}")
    logger.info("=" * 60)

    # Redis 失败不阻断启动，降级为进程内缓存
    redis_ok = await db.init_redis()
    if not redis_ok:
        logger.warning("⚠️ Redis 不可用，缓存降级为进程内存模式")

    app.state.container = build_container(settings, redis=db.get_redis())
    logger.info("✅ 组件装配完成")

    yield

    logger.info("🔄 行情排名服务正在关闭...")
    app.state.container.close()
    await db.close_connections()
    logger.info("✅ 行情排名服务已关闭")


# ── 应用实例 ──────────────────────────────────────────────
app = FastAPI(
    title="加密货币行情排名服务",
    description=(
        "基于 Binance 公共行情的 K 线评分排名微服务，提供以下功能：\n"
        "- 📊 K 线区间查询（1m / 5m / 15m / 1h / 4h / 1d）\n"
        "- 🏆 多指标加权排名（涨跌幅 / 趋势可预测性 / 横盘一致性）\n"
        "- 📈 排名概览与收盘价走势缩略图\n"
        "- 🗄️ TTL 缓存（Redis → 进程内存）\n\n"
        "**分层架构**\n"
        "```\n"
        "Acquisition Layer  ← 从 Binance 拉取原始数据\n"
        "Cache Layer        ← Redis / 内存 TTL 缓存\n"
        "Processing Layer   ← K 线校验与转换\n"
        "Analysis Layer     ← 评分计算\n"
        "```"
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS 中间件 ───────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── 请求计时中间件 ─────────────────────────────────────────
@app.middleware("http")
async def add_process_time(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = f"{(time.time() - start) * 1000:.1f}ms"
    return response


# ── 异常处理 ──────────────────────────────────────────────
def _fail(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse.fail(error=error, message=message).model_dump(),
    )


@app.exception_handler(DomainValidationError)
async def validation_exception_handler(request: Request, exc: DomainValidationError):
    return _fail(400, str(exc), "请求参数不合法")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _fail(400, "; ".join(str(e.get("msg")) for e in exc.errors()), "请求参数不合法")


@app.exception_handler(SymbolNotFoundError)
async def not_found_exception_handler(request: Request, exc: SymbolNotFoundError):
    return _fail(404, str(exc), "交易对不存在")


@app.exception_handler(ChartServiceError)
async def service_exception_handler(request: Request, exc: ChartServiceError):
    logger.error(f"请求处理失败: {exc}")
    return _fail(500, str(exc), "内部服务错误")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"未处理的异常: {exc}", exc_info=True)
    return _fail(500, "内部服务错误", str(exc))


# ── 注册路由 ──────────────────────────────────────────────
app.include_router(health.router)
app.include_router(candles.router)
app.include_router(rankings.router)
app.include_router(overview.router)
app.include_router(symbols.router)
app.include_router(cache.router)


# ── 根路由 ───────────────────────────────────────────────
@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "Chart Ranking Service",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# ── 直接运行入口 ──────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run(
        "chart_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
