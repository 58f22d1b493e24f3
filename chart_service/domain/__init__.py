"""
领域模型
  Symbol / Timeframe  : 值对象
  Candle              : 单根 K 线，构造即校验
  CandleSeries        : 不可变、有序、可检测缺口的 K 线序列
"""

from chart_service.domain.candle import Candle
from chart_service.domain.errors import *  # noqa: F401,F403
from chart_service.domain.series import CandleSeries
from chart_service.domain.symbol import Symbol
from chart_service.domain.timeframe import Timeframe
