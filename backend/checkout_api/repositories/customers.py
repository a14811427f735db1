from __future__ import annotations

from ..db import get_conn


async def get_stripe_customer_id(user_id: str) -> str | None:
    async with get_conn() as cur:
        await cur.execute(
            """
            SELECT stripe_customer_id
              FROM public.customers
             WHERE id = %s
             LIMIT 1
            """,
            (user_id,),
        )
        row = await cur.fetchone()
    return row["stripe_customer_id"] if row else None


async def insert_customer_if_absent(user_id: str, stripe_customer_id: str) -> str:
    """Store the mapping unless one exists; return whichever id is stored."""
    async with get_conn() as cur:
        await cur.execute(
            """
            INSERT INTO public.customers (id, stripe_customer_id)
            VALUES (%s, %s)
            ON CONFLICT (id) DO NOTHING
            RETURNING stripe_customer_id
            """,
            (user_id, stripe_customer_id),
        )
        row = await cur.fetchone()
        if row:
            return row["stripe_customer_id"]
        await cur.execute(
            """
            SELECT stripe_customer_id
              FROM public.customers
             WHERE id = %s
            """,
            (user_id,),
        )
        existing = await cur.fetchone()
    if not existing:
        raise RuntimeError(f"Customer mapping for user {user_id} vanished during insert")
    return existing["stripe_customer_id"]


__all__ = ["get_stripe_customer_id", "insert_customer_if_absent"]
