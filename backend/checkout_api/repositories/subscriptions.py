from __future__ import annotations

from typing import Any, Mapping

from psycopg import errors

from ..db import get_conn

ACTIVE_STATUSES = ("trialing", "active")

SubscriptionRow = dict[str, Any]


async def get_active_subscription(user: Mapping[str, Any]) -> SubscriptionRow | None:
    """Latest trialing/active subscription for the user, with its product name."""
    async with get_conn() as cur:
        try:
            await cur.execute(
                """
                SELECT s.id,
                       s.user_id,
                       s.status,
                       s.price_id,
                       pr.product_id,
                       p.name AS product_name
                  FROM public.subscriptions AS s
             LEFT JOIN public.prices AS pr ON pr.id = s.price_id
             LEFT JOIN public.products AS p ON p.id = pr.product_id
                 WHERE s.user_id = %s
                   AND s.status = ANY(%s)
              ORDER BY s.created DESC
                 LIMIT 1
                """,
                (str(user["id"]), list(ACTIVE_STATUSES)),
            )
        except errors.UndefinedTable:
            return None
        row = await cur.fetchone()
    return dict(row) if row else None


def product_name(subscription: Mapping[str, Any]) -> str | None:
    name = subscription.get("product_name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return None


__all__ = ["ACTIVE_STATUSES", "get_active_subscription", "product_name"]
