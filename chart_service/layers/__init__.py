"""
数据流分层架构
  Layer 1 – Acquisition  : 数据获取（Binance REST）
  Layer 2 – Cache        : TTL 缓存（Redis → 进程内存）与 Cache-Aside
  Layer 3 – Processing   : K 线校验与转换
  Layer 4 – Analysis     : 评分计算
"""
