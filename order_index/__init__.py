# order_index/__init__.py
"""
Customer Order Index：订单 / 订阅的反范式查找索引 + 查询改写。
"""

__version__ = "1.0.0"
