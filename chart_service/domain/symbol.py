"""交易对标识（值对象）"""

import re
from dataclasses import dataclass

from chart_service.domain.errors import InvalidSymbolError

_SYMBOL_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


@dataclass(frozen=True, order=True)
class Symbol:
    """
    规范化后的交易对，例如 BTCUSDT

    只允许 [A-Za-z0-9_-]，构造时统一转为大写；相等性即规范化字符串相等。
    """

    value: str

    def __post_init__(self):
        raw = self.value
        if not isinstance(raw, str) or raw == "":
            raise InvalidSymbolError("symbol cannot be empty")
        if raw.strip() == "":
            raise InvalidSymbolError("symbol cannot be whitespace-only")
        if not _SYMBOL_PATTERN.fullmatch(raw):
            bad = next(ch for ch in raw if not _SYMBOL_PATTERN.fullmatch(ch))
            raise InvalidSymbolError(f"symbol contains invalid character: {bad!r}")
        object.__setattr__(self, "value", raw.upper())

    def __str__(self) -> str:
        return self.value
