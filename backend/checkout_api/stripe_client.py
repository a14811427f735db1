from __future__ import annotations

from typing import Any, Mapping

import stripe

from .config import STRIPE_SECRET_ENV_VAR, settings
from .errors import CheckoutConfigError


def require_stripe() -> None:
    secret = settings.stripe_secret_key
    if not secret:
        raise CheckoutConfigError(f"Env variable {STRIPE_SECRET_ENV_VAR} needs to be set.")
    stripe.api_key = secret


def stripe_field(obj: Any, name: str) -> Any:
    """Read a field from a Stripe object or a plain mapping."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


__all__ = ["require_stripe", "stripe_field"]
