"""
行情排名服务配置模块
支持从环境变量读取配置，自动检测 Docker 容器环境并启用服务发现
"""

import os
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _is_docker() -> bool:
    """检测当前是否运行在 Docker 容器内"""
    return (
        os.path.exists("/.dockerenv")
        or os.environ.get("DOCKER_CONTAINER", "").lower() in ("1", "true", "yes")
    )


def _default_redis_host() -> str:
    """Docker 环境使用服务名 'redis'，本地使用 'localhost'"""
    return "redis" if _is_docker() else "localhost"


class ChartServiceSettings(BaseSettings):
    """行情排名服务配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── 基础配置 ──────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8080)
    DEBUG: bool = Field(default=False)
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"]
    )

    # ── Redis 配置（支持服务发现） ─────────────────────────
    REDIS_HOST: str = Field(default_factory=_default_redis_host)
    REDIS_PORT: int = Field(default=6379)
    REDIS_PASSWORD: str = Field(default="")
    REDIS_DB: int = Field(default=0)
    REDIS_ENABLED: bool = Field(default=True)
    REDIS_MAX_CONNECTIONS: int = Field(default=20)

    @property
    def REDIS_URL(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ── 数据源配置 ─────────────────────────────────────────
    BINANCE_BASE_URL: str = Field(default="https://api.binance.com/api/v3")
    QUOTE_ASSET: str = Field(default="USDT")
    UNIVERSE_LIMIT: int = Field(default=50)
    UNIVERSE_STATIC_SYMBOLS: List[str] = Field(default_factory=list)
    HTTP_TIMEOUT: float = Field(default=10.0)
    HTTP_MAX_RETRIES: int = Field(default=3)

    # ── 缓存配置（秒） ────────────────────────────────────
    CANDLE_CACHE_TTL: int = Field(default=300)
    UNIVERSE_CACHE_TTL: int = Field(default=1800)
    VOLUME_CACHE_TTL: int = Field(default=120)
    RANKINGS_CACHE_TTL: int = Field(default=60)
    OVERVIEW_CACHE_TTL: int = Field(default=60)

    # ── 排名 / 概览配置 ───────────────────────────────────
    OVERVIEW_SPARKLINE_PRECISION: int = Field(default=30)
    OVERVIEW_MAX_WORKERS: int = Field(default=5)
    OVERVIEW_DEFAULT_LIMIT: int = Field(default=10)
    RANKING_LOOKBACK: int = Field(default=100)
    SYMBOL_DETAIL_DEFAULT_LIMIT: int = Field(default=100)
    SYMBOL_DETAIL_MAX_LIMIT: int = Field(default=1000)

    WEIGHT_GAIN_LOSS: float = Field(default=1.0)
    WEIGHT_TREND: float = Field(default=1.0)
    WEIGHT_SIDEWAYS: float = Field(default=1.0)

    # ── 日志配置 ──────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")

    @field_validator("OVERVIEW_SPARKLINE_PRECISION")
    @classmethod
    def _clamp_precision(cls, v: int) -> int:
        if v <= 0:
            return 30
        return min(v, 200)

    @field_validator("OVERVIEW_MAX_WORKERS", "RANKING_LOOKBACK")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v


@lru_cache
def get_settings() -> ChartServiceSettings:
    """获取全局配置（单例）"""
    return ChartServiceSettings()


settings = get_settings()
