# order_index/services/record_attributes.py
"""
宿主记录上与索引相关的属性 key。

触发规则：
  - 命中 INDEX_TRIGGER_KEYS，或以 SCHEDULE_PREFIX 开头（订阅生命周期日期）→ 整行重算
  - 其余属性变更一律忽略
"""
from __future__ import annotations

CUSTOMER_USER = "_customer_user"
ORDER_NUMBER = "_order_number"
ORDER_TOTAL = "_order_total"

BILLING_EMAIL = "_billing_email"
BILLING_FIRST_NAME = "_billing_first_name"
BILLING_LAST_NAME = "_billing_last_name"
SHIPPING_FIRST_NAME = "_shipping_first_name"
SHIPPING_LAST_NAME = "_shipping_last_name"
BILLING_CITY = "_billing_city"
SHIPPING_CITY = "_shipping_city"
BILLING_POSTCODE = "_billing_postcode"
SHIPPING_POSTCODE = "_shipping_postcode"

# 订阅生命周期日期
SCHEDULE_PREFIX = "_schedule_"
SCHEDULE_START = "_schedule_start"
SCHEDULE_TRIAL_END = "_schedule_trial_end"
SCHEDULE_NEXT_PAYMENT = "_schedule_next_payment"
SCHEDULE_END = "_schedule_end"
SCHEDULE_LAST_PAYMENT = "_schedule_last_payment"

# 续费订单 → 所属订阅
SUBSCRIPTION_RENEWAL = "_subscription_renewal"

INDEX_TRIGGER_KEYS = frozenset(
    {
        CUSTOMER_USER,
        ORDER_NUMBER,
        ORDER_TOTAL,
        BILLING_EMAIL,
        BILLING_FIRST_NAME,
        BILLING_LAST_NAME,
        SHIPPING_FIRST_NAME,
        SHIPPING_LAST_NAME,
        BILLING_CITY,
        SHIPPING_CITY,
        BILLING_POSTCODE,
        SHIPPING_POSTCODE,
    }
)


def triggers_recompute(attribute_name: str) -> bool:
    name = attribute_name or ""
    return name in INDEX_TRIGGER_KEYS or name.startswith(SCHEDULE_PREFIX)
