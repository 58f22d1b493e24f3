"""
加密货币行情排名服务
独立的 FastAPI 微服务：K 线查询、多指标评分排名、排名概览与交易对详情

架构分层：
  数据获取层 (Acquisition)  → 从 Binance 公共接口拉取 K 线、交易对列表、24h 成交额
  缓存层     (Cache)        → Redis / 进程内存 TTL 缓存 + Cache-Aside
  处理层     (Processing)   → 原始 K 线校验、去除未收盘 K 线、转换为领域对象
  分析层     (Analysis)     → 涨跌幅 / 趋势可预测性 / 横盘一致性评分
"""

__version__ = "1.0.0"
