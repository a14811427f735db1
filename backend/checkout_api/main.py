import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import CheckoutConfig, settings
from .db import get_conn, pool
from .error_reporting import init_sentry, report_exception
from .errors import CheckoutConfigError, CheckoutError, UpstreamError
from .logging_utils import setup_logging
from .middleware.request_context import RequestContextMiddleware
from .routes import stripe_checkout

setup_logging()
logger = logging.getLogger(__name__)


def load_checkout_config(app: FastAPI) -> None:
    try:
        app.state.checkout_config = CheckoutConfig.from_settings(settings)
        app.state.checkout_config_error = None
    except CheckoutConfigError as exc:
        app.state.checkout_config = None
        app.state.checkout_config_error = exc
        logger.error("Checkout configuration invalid: %s", exc.detail)
        report_exception(exc, kind=exc.kind)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_sentry(settings)
    load_checkout_config(app)
    await pool.open(wait=True)
    try:
        yield
    finally:
        await pool.close()


app = FastAPI(title="Subscription Checkout API", version="0.1.0", lifespan=lifespan)

app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "token",
        "X-Request-ID",
    ],
)

app.include_router(stripe_checkout.router)


@app.exception_handler(CheckoutError)
async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Checkout request failed: %s",
        exc.detail,
        extra={"kind": exc.kind, "status_code": exc.status_code, "path": request.url.path},
    )
    report_exception(exc, kind=exc.kind, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "kind": exc.kind},
    )


@app.exception_handler(StarletteHTTPException)
async def checkout_method_handler(request: Request, exc: StarletteHTTPException):
    if (
        exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
        and request.url.path == stripe_checkout.CHECKOUT_SESSION_URL
    ):
        return stripe_checkout.method_not_allowed_response()
    return await http_exception_handler(request, exc)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    error = UpstreamError(str(exc) or exc.__class__.__name__)
    report_exception(exc, kind=error.kind, status_code=error.status_code)
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.detail, "kind": error.kind},
    )


@app.get("/healthz")
async def healthz(request: Request):
    return {
        "ok": True,
        "message": "Backend responding",
        "checkout_configured": getattr(request.app.state, "checkout_config", None) is not None,
    }


@app.get("/readyz")
async def readyz():
    try:
        async with get_conn() as cur:  # type: ignore[attr-defined]
            await cur.execute("select 1")  # type: ignore[attr-defined]
            await cur.fetchone()
    except Exception as exc:
        raise HTTPException(status_code=503, detail="database unavailable") from exc
    return {"ok": True, "database": "ready"}
