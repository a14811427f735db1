from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping

from pydantic import ValidationError

from ..config import TAX_RATE_ENV_VAR, CheckoutConfig
from ..errors import (
    CheckoutConfigError,
    CheckoutError,
    InvalidInputError,
    SubscriptionConflictError,
    UpstreamError,
)
from ..logging_context import set_user_context
from ..repositories import subscriptions as subscriptions_repo
from ..schemas.checkout import CheckoutSessionRequest
from .. import auth
from . import stripe_checkout, stripe_customers

logger = logging.getLogger(__name__)

User = Mapping[str, Any]
ResolveUser = Callable[[str], Awaitable[User | None]]
GetOrCreateCustomer = Callable[[User], Awaitable[str]]
GetActiveSubscription = Callable[[User], Awaitable[Mapping[str, Any] | None]]
CreateSession = Callable[[Mapping[str, Any]], Awaitable[str]]


def _type_name(value: Any) -> str:
    return type(value).__name__


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def conflict_message(subscription: Mapping[str, Any]) -> str:
    name = subscriptions_repo.product_name(subscription)
    suffix = f' "{name}"' if name else ""
    return (
        "You can only have one active subscription at a time. "
        f"Please cancel your existing subscription{suffix}."
    )


def build_session_params(
    config: CheckoutConfig,
    customer_id: str,
    request: CheckoutSessionRequest,
) -> dict[str, Any]:
    return_url = f"{config.site_url}/"
    return {
        "payment_method_types": ["card"],
        "billing_address_collection": "required",
        "customer": customer_id,
        "line_items": [
            {
                "price": request.price.id,
                "dynamic_tax_rates": [config.tax_rate_id],
                "quantity": request.quantity,
            }
        ],
        "mode": "subscription",
        "allow_promotion_codes": True,
        "subscription_data": {
            "trial_from_plan": True,
            "metadata": dict(request.metadata),
        },
        "success_url": return_url,
        "cancel_url": return_url,
    }


class CheckoutSessionHandler:
    """Runs the subscription checkout steps in order against its collaborators.

    Each collaborator is awaited before the next one starts. Errors that are
    not already ``CheckoutError`` are wrapped as ``UpstreamError`` so the app
    level handler can map them to a response.
    """

    def __init__(
        self,
        config: CheckoutConfig | None,
        *,
        config_error: CheckoutConfigError | None = None,
        resolve_user: ResolveUser = auth.resolve_user,
        get_or_create_customer: GetOrCreateCustomer = stripe_customers.get_or_create_customer,
        get_active_subscription: GetActiveSubscription = subscriptions_repo.get_active_subscription,
        create_session: CreateSession = stripe_checkout.create_session,
    ) -> None:
        self.config = config
        self.config_error = config_error
        self._resolve_user = resolve_user
        self._get_or_create_customer = get_or_create_customer
        self._get_active_subscription = get_active_subscription
        self._create_session = create_session

    async def create(self, token: Any, body: Any) -> str:
        if not isinstance(token, str):
            raise InvalidInputError(f"Expected token as string, got {_type_name(token)}.")
        request = self._parse_body(body)

        user = await self._call(self._resolve_user, token)
        if not user:
            raise InvalidInputError("Got empty user.")
        user_id = user.get("id") if isinstance(user, Mapping) else None
        if not user_id:
            raise UpstreamError("Resolved user has no id.")
        user_id = str(user_id)
        set_user_context(user_id)

        customer_id = await self._call(self._get_or_create_customer, user)

        subscription = await self._call(self._get_active_subscription, user)
        if subscription:
            logger.info(
                "Rejected checkout for user with active subscription",
                extra={"subscription_id": subscription.get("id")},
            )
            raise SubscriptionConflictError(conflict_message(subscription))

        config = self._require_config()
        params = build_session_params(config, customer_id, request)
        session_id = await self._call(self._create_session, params)
        logger.info(
            "Created checkout session",
            extra={
                "session_id": session_id,
                "customer_id": customer_id,
                "price_id": request.price.id,
                "quantity": request.quantity,
            },
        )
        return session_id

    def _parse_body(self, body: Any) -> CheckoutSessionRequest:
        if not isinstance(body, Mapping):
            raise InvalidInputError(
                f"Invalid checkout request: expected a JSON object, got {_type_name(body)}."
            )
        try:
            return CheckoutSessionRequest.model_validate(body)
        except ValidationError as exc:
            raise InvalidInputError(
                f"Invalid checkout request: {_format_validation_error(exc)}"
            ) from exc

    def _require_config(self) -> CheckoutConfig:
        if self.config is not None:
            return self.config
        if self.config_error is not None:
            raise CheckoutConfigError(self.config_error.detail)
        raise CheckoutConfigError(f"Env variable {TAX_RATE_ENV_VAR} needs to be set.")

    @staticmethod
    async def _call(func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        try:
            return await func(*args)
        except CheckoutError:
            raise
        except Exception as exc:
            raise UpstreamError(str(exc) or exc.__class__.__name__) from exc


__all__ = [
    "CheckoutSessionHandler",
    "build_session_params",
    "conflict_message",
]
