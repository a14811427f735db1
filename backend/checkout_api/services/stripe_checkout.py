from __future__ import annotations

from typing import Any, Mapping

import stripe
from starlette.concurrency import run_in_threadpool

from ..errors import UpstreamError
from ..stripe_client import require_stripe, stripe_field


async def create_session(params: Mapping[str, Any]) -> str:
    """Create a Stripe Checkout session and return its id."""
    require_stripe()

    def _create() -> Any:
        return stripe.checkout.Session.create(**params)

    session = await run_in_threadpool(_create)
    session_id = stripe_field(session, "id")
    if not isinstance(session_id, str) or not session_id:
        raise UpstreamError("Stripe session missing id")
    return session_id


__all__ = ["create_session"]
