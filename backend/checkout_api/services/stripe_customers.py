from __future__ import annotations

import logging
from typing import Any, Mapping

import stripe
from starlette.concurrency import run_in_threadpool

from ..errors import UpstreamError
from ..repositories import customers as customers_repo
from ..stripe_client import require_stripe, stripe_field

logger = logging.getLogger(__name__)


async def get_or_create_customer(user: Mapping[str, Any]) -> str:
    user_id = str(user["id"])
    existing = await customers_repo.get_stripe_customer_id(user_id)
    if existing:
        return existing

    require_stripe()

    def _create_customer() -> Any:
        params: dict[str, Any] = {"metadata": {"supabaseUUID": user_id}}
        if user.get("email"):
            params["email"] = user["email"]
        return stripe.Customer.create(**params)

    customer = await run_in_threadpool(_create_customer)
    customer_id = stripe_field(customer, "id")
    if not isinstance(customer_id, str):
        raise UpstreamError("Stripe did not return a customer id")

    stored_id = await customers_repo.insert_customer_if_absent(user_id, customer_id)
    if stored_id != customer_id:
        logger.warning(
            "Concurrent customer creation; keeping stored Stripe customer",
            extra={"stored_customer_id": stored_id, "orphan_customer_id": customer_id},
        )
    else:
        logger.info("Created Stripe customer", extra={"customer_id": customer_id})
    return stored_id


__all__ = ["get_or_create_customer"]
