from .customers import get_stripe_customer_id, insert_customer_if_absent
from .subscriptions import get_active_subscription

__all__ = [
    "get_active_subscription",
    "get_stripe_customer_id",
    "insert_customer_if_absent",
]
