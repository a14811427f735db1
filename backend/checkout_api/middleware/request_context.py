from __future__ import annotations

import uuid

import sentry_sdk
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..logging_context import pop_request_context, push_request_context

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to logs and Sentry for the lifetime of the request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = push_request_context(request_id)
        request.state.request_id = request_id
        sentry_sdk.set_tag("request_id", request_id)
        try:
            response: Response = await call_next(request)
        finally:
            pop_request_context(token)
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response
