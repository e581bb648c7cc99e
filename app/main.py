from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, user_operations
from .api.errors import register_error_handlers
from .config import Settings, settings as default_settings
from .core.policy import EligibilityPolicy, build_eligibility_policy
from .logging_config import setup_logging
from .middleware.logging_middleware import RequestLoggingMiddleware
from .providers.bundler import BundlerConfig, BundlerProvider
from .providers.paymaster import PaymasterConfig, PaymasterProvider

logger = structlog.stdlib.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    paymaster: Optional[PaymasterProvider] = None,
    bundler: Optional[BundlerProvider] = None,
    policy: Optional[EligibilityPolicy] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the application and every long-lived collaborator it uses.

    Providers built here share one httpx client owned by the app lifespan.
    No client is created when both providers are injected.
    """
    settings = settings or default_settings
    if configure_logging:
        setup_logging(settings.log_level)

    http_client: Optional[httpx.AsyncClient] = None
    if paymaster is None or bundler is None:
        http_client = httpx.AsyncClient(timeout=settings.request_timeout_seconds)
    if policy is None:
        policy = build_eligibility_policy(
            allowlist=settings.sponsorship_allowlist_addresses,
            daily_quota=settings.sponsorship_daily_quota,
        )
    if paymaster is None:
        paymaster = PaymasterProvider(
            PaymasterConfig.from_settings(settings),
            policy=policy,
            http_client=http_client,
        )
    if bundler is None:
        bundler = BundlerProvider(BundlerConfig.from_settings(settings), http_client=http_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "server_started",
            environment=settings.environment,
            chain_id=settings.chain_id,
            paymaster_configured=settings.has_paymaster,
            bundler_configured=settings.has_bundler,
            allowed_origins=settings.allowed_origin_list,
        )
        try:
            yield
        finally:
            if http_client is not None:
                await http_client.aclose()

    app = FastAPI(
        title="UserOperation Relay API",
        description="Gas-sponsored ERC-4337 UserOperation relay backend",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.paymaster = paymaster
    app.state.bundler = bundler

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(user_operations.router, tags=["UserOperations"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "UserOperation Relay API",
            "version": "0.1.0",
            "chainId": settings.chain_id,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=True,
        log_level=default_settings.log_level.lower()
    )
