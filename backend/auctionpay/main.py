from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auctionpay.api.v1 import api_router
from auctionpay.core.config import settings
from auctionpay.core.logging_config import configure_logging
from auctionpay.core.sentry import init_sentry
from auctionpay.middleware import RequestLoggingMiddleware
from auctionpay.schemas.error import ErrorResponse
from auctionpay.services.errors import CalculationError


def get_application() -> FastAPI:
    configure_logging(settings.log_json)
    init_sentry()
    tags_metadata = [
        {"name": "calculations", "description": "Invoice totals, buyer's premium, tax and verification"},
        {"name": "health", "description": "Liveness and readiness probes"},
        {"name": "metrics", "description": "In-process calculation counters"},
    ]
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        openapi_tags=tags_metadata,
        swagger_ui_parameters={"displayRequestDuration": True},
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router, prefix="/api/v1")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        payload = ErrorResponse(detail=exc.detail, code=None)
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(payload.model_dump()))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        payload = ErrorResponse(detail=errors, code="validation_error")
        return JSONResponse(status_code=422, content=payload.model_dump())

    @app.exception_handler(CalculationError)
    async def calculation_exception_handler(request: Request, exc: CalculationError):
        status_code = 400 if exc.client_error else 500
        payload = ErrorResponse.from_calculation_error(exc)
        return JSONResponse(status_code=status_code, content=payload.model_dump())

    return app


app = get_application()
