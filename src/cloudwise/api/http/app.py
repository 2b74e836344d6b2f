"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from cloudwise.api.http.app_data import ApplicationDependencies
from cloudwise.api.http.errors import client_ip, error_response, register_exception_handlers
from cloudwise.api.http.routers import accounts, admin, auth, blog, health, payments
from cloudwise.api.utils.app_startup import configure_logging
from cloudwise.core.services import (
    DbSessionService,
    JWKSCacheInMemory,
    JwksService,
    JwtVerificationService,
    StripeWebhookVerifier,
)
from cloudwise.runtime.context import get_config


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if get_config().app.environment == "production":
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response


def build_dependencies() -> ApplicationDependencies:
    """Construct the process-wide services from the current configuration."""
    jwks_cache = JWKSCacheInMemory()
    jwks_service = JwksService(jwks_cache)
    return ApplicationDependencies(
        jwks_cache=jwks_cache,
        jwks_service=jwks_service,
        jwt_verify_service=JwtVerificationService(jwks_service),
        database_service=DbSessionService(),
        webhook_verifier=StripeWebhookVerifier(),
    )


async def startup(deps: ApplicationDependencies) -> None:
    config = get_config()
    logger.info("Starting up application in {} environment", config.app.environment)

    if config.app.environment in ("development", "test"):
        deps.database_service.create_all()

    # surface identity provider problems before the first request does
    if config.auth0.domain:
        warmed = await deps.jwks_service.warmup()
        if not warmed and config.app.environment == "production":
            raise RuntimeError(f"JWKS readiness check failed for {config.auth0.jwks_uri}")
    else:
        logger.warning("auth0.domain is not configured; every bearer token will be rejected")

    if not config.auth0.audience:
        if config.app.environment == "production":
            raise RuntimeError("auth0.audience must be configured in production")
        logger.warning("auth0.audience is not configured; every bearer token will be rejected")


async def shutdown(deps: ApplicationDependencies) -> None:
    logger.info("Shutting down application")
    deps.database_service.dispose()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    deps: ApplicationDependencies | None = getattr(app.state, "app_dependencies", None)
    if deps is None:
        deps = build_dependencies()
        app.state.app_dependencies = deps

    await startup(deps)
    try:
        yield
    finally:
        await shutdown(deps)


async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip(request),
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    start = time.perf_counter()
    with logger.contextualize(**base_ctx):
        logger.info("request.start")
        try:
            response = await call_next(request)
        except Exception as exc:
            # anything the exception handlers did not claim
            response = error_response(request, exc)

        duration_ms = (time.perf_counter() - start) * 1000
        logger.bind(
            status_code=response.status_code,
            duration_ms=round(duration_ms, 1),
        ).info("request.end")
        response.headers.setdefault("X-Request-ID", request_id)
        return response


def create_app(app_dependencies: ApplicationDependencies | None = None) -> FastAPI:
    """Build the API.

    Args:
        app_dependencies: Prebuilt services. When omitted they are built from
            the current configuration during startup.
    """
    config = get_config()
    is_production = config.app.environment == "production"

    if is_production and "*" in config.app.cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )

    app = FastAPI(
        title="CloudWise API",
        lifespan=lifespan,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
    )
    if app_dependencies is not None:
        app.state.app_dependencies = app_dependencies

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors.origins,
        allow_credentials=config.app.cors.allow_credentials,
        allow_methods=config.app.cors.allow_methods,
        allow_headers=config.app.cors.allow_headers,
    )
    app.middleware("http")(log_requests)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    for account_router in accounts.routers:
        app.include_router(account_router)
    app.include_router(admin.router)
    app.include_router(blog.router)
    app.include_router(payments.router)

    return app


app = create_app()

__all__ = ["app", "create_app", "startup", "shutdown"]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=get_config().app.host,
        port=get_config().app.port,
        access_log=False,
    )
