"""
relay_auth.api.app

FastAPI app factory for the relay auth control API.

Responsibilities:
- Build the FastAPI application and register routers.
- Own (or adopt) the `RelayAuthManager` the routers operate on.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from relay_auth import __version__
from relay_auth.api.routers.dev_auth import router as dev_auth_router
from relay_auth.api.routers.health import router as health_router
from relay_auth.api.routers.preferences import router as preferences_router
from relay_auth.api.routers.relays import router as relays_router
from relay_auth.contracts import RelayPoolFeeds, Signer
from relay_auth.feeds import ValueFeed
from relay_auth.observability.logging import configure_logging, get_logger
from relay_auth.observability.middleware import RequestContextMiddleware
from relay_auth.services.relay_auth_manager import RelayAuthManager
from relay_auth.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, manager: RelayAuthManager | None = None) -> FastAPI:
    """
    When `manager` is omitted the app builds one with an empty relay pool and no signer;
    the embedding process feeds them through `app.state.pool` and `app.state.signer`.
    """

    configure_logging(
        service_name=settings.service_name, level=settings.log_level, json_logs=settings.log_json
    )

    owns_manager = manager is None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, owns_manager=owns_manager)
        try:
            yield
        finally:
            # Only tear down what we built; an injected manager belongs to the caller.
            if owns_manager:
                app.state.manager.destroy()
            log.info("shutdown")

    app = FastAPI(
        title="Relay Auth Coordinator",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    if manager is None:
        signer: ValueFeed[Signer | None] = ValueFeed(None)
        pool = RelayPoolFeeds()
        manager = RelayAuthManager.from_settings(settings, signer=signer, pool=pool)
        app.state.signer = signer
        app.state.pool = pool

    app.state.settings = settings
    app.state.manager = manager

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(relays_router)
    app.include_router(preferences_router)
    if settings.env != "prod":
        app.include_router(dev_auth_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Business logic stays in `relay_auth.services`; routers only translate HTTP to manager calls.
