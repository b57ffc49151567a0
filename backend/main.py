import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import (
    accounts_router,
    catalog_router,
    contact_router,
    orders_router,
    payment_provider_router,
    payments_router,
)
from config import settings
from dependencies import Services, build_services
from errors import StorefrontError, ValidationError

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger("datahub")

if settings.allowed_origins == ["*"]:
    allow_origins = ["*"]
else:
    allow_origins = settings.allowed_origins


def create_app(services: Services | None = None) -> FastAPI:
    app = FastAPI(title="DataHub Storefront API")
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(catalog_router)
    app.include_router(accounts_router)
    app.include_router(orders_router)
    app.include_router(payments_router)
    app.include_router(payment_provider_router)
    app.include_router(contact_router)

    @app.exception_handler(StorefrontError)
    async def _storefront_error(request: Request, exc: StorefrontError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("%s %s rejected: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": ValidationError.default_message},
        )

    @app.on_event("startup")
    async def _on_startup() -> None:
        if app.state.services is None:
            app.state.services = build_services(settings)
        if allow_origins == ["*"]:
            logger.warning(
                "CORS is set to allow all origins with credentials; set ALLOWED_ORIGINS to explicit values in production."
            )

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        if app.state.services is not None:
            await app.state.services.notifier.drain()

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
