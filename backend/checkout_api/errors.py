from __future__ import annotations


class CheckoutError(Exception):
    """Base error for checkout requests; carries the HTTP status and a kind tag."""

    status_code = 500
    kind = "upstream"

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail


class InvalidInputError(CheckoutError):
    status_code = 400
    kind = "invalid_input"


class SubscriptionConflictError(CheckoutError):
    status_code = 400
    kind = "conflict"


class CheckoutConfigError(CheckoutError):
    status_code = 500
    kind = "configuration"


class UpstreamError(CheckoutError):
    status_code = 500
    kind = "upstream"


__all__ = [
    "CheckoutConfigError",
    "CheckoutError",
    "InvalidInputError",
    "SubscriptionConflictError",
    "UpstreamError",
]
