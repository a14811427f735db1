from .checkout import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    ErrorResponse,
    PriceReference,
)

__all__ = [
    "CheckoutSessionRequest",
    "CheckoutSessionResponse",
    "ErrorResponse",
    "PriceReference",
]
