from __future__ import annotations

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..schemas import CheckoutSessionResponse, ErrorResponse
from ..services.checkout_session import CheckoutSessionHandler

router = APIRouter(prefix="/api/stripe", tags=["stripe"])

CHECKOUT_SESSION_PATH = "/create-checkout-session"
CHECKOUT_SESSION_URL = f"{router.prefix}{CHECKOUT_SESSION_PATH}"
TOKEN_HEADER = "token"


def get_checkout_handler(request: Request) -> CheckoutSessionHandler:
    state = request.app.state
    return CheckoutSessionHandler(
        getattr(state, "checkout_config", None),
        config_error=getattr(state, "checkout_config_error", None),
    )


CheckoutHandler = Annotated[CheckoutSessionHandler, Depends(get_checkout_handler)]


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


@router.post(
    CHECKOUT_SESSION_PATH,
    response_model=CheckoutSessionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def create_checkout_session(
    request: Request, handler: CheckoutHandler
) -> CheckoutSessionResponse:
    token = request.headers.get(TOKEN_HEADER)
    body = await _read_json(request)
    session_id = await handler.create(token, body)
    return CheckoutSessionResponse(session_id=session_id)


def method_not_allowed_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"error": "Method Not Allowed"},
        headers={"Allow": "POST"},
    )
