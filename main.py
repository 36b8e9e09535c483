from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from api.v1.payments_route import router as v1_payments_route_router
from api.v1.webhooks_route import router as v1_webhooks_route_router
from core.database import create_client, get_database
from core.errors import ErrorCode
from core.logging_config import setup_logging
from core.payments.manager import PaymentManager
from core.payments.options import PaymentPluginOptions
from core.response_envelope import (
    apply_response_documentation,
    document_response,
    error_response,
    http_exception_response,
    request_id_of,
)
from core.settings import get_settings
from repositories.commerce_store import MongoCommerceStore

settings = get_settings()
setup_logging(level=settings.log_level, log_format=settings.log_format)
logger = structlog.get_logger(__name__)


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = create_client(settings.mongo_url)
    app.state.db = get_database(client, settings.db_name)
    options = PaymentPluginOptions.from_settings(settings)
    app.state.payment_manager = PaymentManager(
        store=MongoCommerceStore(app.state.db),
        options=options,
        default_channel_token=settings.default_channel_token,
    )
    logger.info(
        "payments_configured",
        environment=options.environment.value,
        basic_auth=options.basic_auth_credentials is not None,
        hmac=options.hmac_key is not None,
        auto_settle=options.auto_settle,
    )
    try:
        yield
    finally:
        await client.close()


app = FastAPI(lifespan=lifespan, title="Order Payments API")
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins) if settings.cors_origins else ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException):
    return http_exception_response(exc=exc, request=request)


@app.exception_handler(RequestValidationError)
async def custom_validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        status_code=422,
        message="Validation error",
        data={"code": ErrorCode.VALIDATION_FAILED.value, "details": jsonable_encoder(exc.errors())},
        request_id=request_id_of(request),
    )


@app.exception_handler(Exception)
async def custom_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_request_error", path=request.url.path)
    details = str(exc) if (settings.debug_include_error_details and not settings.is_production) else None
    return error_response(
        status_code=500,
        message="Internal Server Error",
        data={"code": ErrorCode.INTERNAL_ERROR.value, "details": details},
        request_id=request_id_of(request),
    )


@app.get("/health", tags=["Health"])
@document_response(
    message="Health check completed",
    success_example={"status": "healthy", "services": {"mongo": {"status": "healthy"}}},
)
async def health_check(request: Request):
    start = time.perf_counter()
    try:
        await request.app.state.db.command("ping")
        mongo = {"status": "healthy", "message": "MongoDB ping successful"}
        overall_status = "healthy"
    except Exception as exc:
        mongo = {"status": "unhealthy", "message": str(exc)}
        overall_status = "degraded"
    mongo["latency_ms"] = round((time.perf_counter() - start) * 1000, 2)

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {"mongo": mongo},
    }


app.include_router(v1_payments_route_router, prefix="/v1")
app.include_router(v1_webhooks_route_router, prefix="/v1")

apply_response_documentation(app)
