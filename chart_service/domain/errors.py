"""
领域异常体系

  DomainValidationError  → 输入不合法（同步抛给调用方，不重试、不自动修正）
  ScoringError           → 评分器前置条件不满足，整个排名调用失败
  UpstreamError          → 上游数据源（行情 / 交易对列表）失败
  CacheError             → 缓存后端失败，调用方一律降级处理
"""


class ChartServiceError(Exception):
    """所有业务异常的基类"""


# ── 校验类异常 ────────────────────────────────────────────

class DomainValidationError(ChartServiceError, ValueError):
    """领域对象构造校验失败"""


class InvalidSymbolError(DomainValidationError):
    pass


class InvalidTimeframeError(DomainValidationError):
    pass


class NonUTCTimestampError(DomainValidationError):
    pass


class NegativeValueError(DomainValidationError):
    pass


class PriceRangeError(DomainValidationError):
    pass


class MisalignedTimestampError(DomainValidationError):
    pass


class DuplicateTimestampError(DomainValidationError):
    pass


class SeriesMismatchError(DomainValidationError):
    pass


class EmptySeriesError(ChartServiceError, LookupError):
    """对空序列调用 first() / last()"""


# ── 评分异常 ──────────────────────────────────────────────

class ScoringError(ChartServiceError):
    pass


class InsufficientDataError(ScoringError):
    pass


class DegenerateSeriesError(ScoringError):
    pass


# ── 外部依赖异常 ──────────────────────────────────────────

class UpstreamError(ChartServiceError):
    """行情源 / 交易对列表源请求或解析失败"""


class CacheError(ChartServiceError):
    """缓存读写失败（永远不应暴露给最终用户）"""


# ── 用例异常 ──────────────────────────────────────────────

class NoCandlesError(ChartServiceError):
    """概览聚合时所有交易对都没有取到 K 线"""

    def __init__(self, message: str = "no candles for any ranked symbol"):
        super().__init__(message)


class SymbolNotFoundError(ChartServiceError, LookupError):
    def __init__(self, symbol: str):
        super().__init__(f"symbol not found: {symbol}")
        self.symbol = symbol
