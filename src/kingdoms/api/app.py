"""FastAPI application wiring for the kingdom engine."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kingdoms.api import routes
from kingdoms.api.runtime import ApiState, build_state
from kingdoms.config import Settings, get_settings


def create_app(
    *,
    state_factory: Callable[[], ApiState] = build_state,
    settings: Settings | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application.

    The database engine, session factory and transaction coordinator are built
    by ``state_factory`` when the app starts and disposed when it stops.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = state_factory()
        app.state.api_state = state
        try:
            yield
        finally:
            await state.shutdown()

    settings = settings or get_settings()
    app = FastAPI(
        title="Kingdoms API",
        version="0.1.0",
        description=f"Kingdom economy and combat engine (rules {settings.rules_version})",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(routes.router)
    return app


app = create_app()
