from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from checkout_service.catalog.base import CatalogReader
from checkout_service.catalog.http import HttpCatalogReader
from checkout_service.catalog.mongo import MongoCatalogReader
from checkout_service.core.config import Settings, get_settings
from checkout_service.core.errors import CartValidationError, CheckoutError
from checkout_service.core.logging import setup_logging
from checkout_service.db import build_engine, build_session_factory, create_schema
from checkout_service.dependencies.auth import IdentityGate
from checkout_service.middleware.logging import LoggingMiddleware
from checkout_service.routers import metrics as metrics_router
from checkout_service.routers import orders as orders_router
from checkout_service.schemas.order import ErrorItem, ErrorResponse, FailResponse
from checkout_service.service.checkout import CheckoutCoordinator


def build_catalog_reader(settings: Settings) -> CatalogReader:
    if settings.CATALOG_BACKEND == "http":
        return HttpCatalogReader.from_url(
            settings.CATALOG_SERVICE_URL,
            timeout=settings.CATALOG_HTTP_TIMEOUT,
            service_name=settings.SERVICE_NAME,
        )
    return MongoCatalogReader.from_url(
        settings.MONGO_URL,
        settings.MONGO_PRODUCTS_COLLECTION,
        service_name=settings.SERVICE_NAME,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Application startup: initializing orders DB and catalog reader")
    engine = build_engine(settings)
    if settings.DB_CREATE_ALL:
        await create_schema(engine)
    catalog = build_catalog_reader(settings)

    app.state.coordinator = CheckoutCoordinator(
        catalog,
        build_session_factory(engine),
        lookup_timeout=settings.CATALOG_LOOKUP_TIMEOUT,
        service_name=settings.SERVICE_NAME,
    )
    logger.info("Application startup completed")
    yield
    logger.info("Application shutdown: closing catalog reader and DB engine")
    await catalog.close()
    await engine.dispose()
    logger.info("Application shutdown completed")


def _fail(status_code: int, body: FailResponse | ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    if isinstance(exc, CartValidationError):
        return _fail(
            exc.status_code,
            FailResponse(errors=[ErrorItem(**v.as_dict()) for v in exc.violations]),
        )
    if exc.client_error:
        logger.warning(
            "Request {method} {path} failed with {status_code}: {message}",
            method=request.method,
            path=request.url.path,
            status_code=exc.status_code,
            message=exc.message,
        )
        return _fail(exc.status_code, FailResponse(message=exc.message))
    logger.error(
        "Request {method} {path} failed with {status_code}: {message}",
        method=request.method,
        path=request.url.path,
        status_code=exc.status_code,
        message=exc.message,
    )
    return _fail(exc.status_code, ErrorResponse(message=exc.message))


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        ErrorItem(
            msg=err.get("msg", "Invalid request"),
            path=".".join(str(part) for part in err.get("loc", ()) if part != "body") or "body",
        )
        for err in exc.errors()
    ]
    logger.warning("Malformed request body for {path}", path=request.url.path)
    return _fail(400, FailResponse(errors=errors))


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Checkout Service",
        swagger_ui_parameters={"persistAuthorization": True},
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.identity_gate = IdentityGate(
        settings.SECRET_KEY,
        settings.ALGORITHM,
        service_name=settings.SERVICE_NAME,
    )

    app.add_exception_handler(CheckoutError, checkout_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_middleware(LoggingMiddleware, service_name=settings.SERVICE_NAME)

    app.include_router(orders_router.router)
    app.include_router(metrics_router.router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("checkout_service.main:app", host="0.0.0.0", port=8000, reload=True)
