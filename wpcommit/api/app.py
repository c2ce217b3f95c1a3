"""FastAPI application factory and lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

from fastapi import FastAPI

from wpcommit.api.routes.health import router as health_router
from wpcommit.api.routes.messages import router as messages_router
from wpcommit.config.logging import init_logging
from wpcommit.config.settings import load_settings
from wpcommit.resolve import FetchTransport
from wpcommit.runtime import Runtime, create_runtime, dispose_runtime

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


class StartupTransportError(TypeError):
    """Raised when app state carries an unusable fetch transport override."""

    @classmethod
    def invalid_transport(cls) -> StartupTransportError:
        """Build deterministic error for transport overrides without fetch()."""
        message = "Invalid fetch transport: expected fetch(url, *, timeout_seconds)."
        return cls(message)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown events."""
    settings = load_settings()
    transport = _resolve_transport_override(app)
    runtime: Runtime | None = None

    logger.info(
        "Starting wpcommit (trac=%s, profiles=%s)",
        settings.trac_base_url,
        settings.profiles_base_url,
    )
    try:
        runtime = create_runtime(settings, transport=transport)
        if runtime.owned_transport is not None:
            await runtime.owned_transport.startup()
        app.state.runtime = runtime
        yield
    finally:
        if runtime is not None:
            await dispose_runtime(runtime)
        _clear_runtime_state(app)
        logger.info("Shutting down wpcommit")


def create_app() -> FastAPI:
    """Create and configure a new FastAPI application instance."""
    settings = load_settings()
    init_logging(settings.log_level)

    app = FastAPI(
        title="wpcommit",
        description="WordPress commit message validator",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.fetch_transport = None
    app.include_router(health_router)
    app.include_router(messages_router)
    return app


def _resolve_transport_override(app: FastAPI) -> FetchTransport | None:
    """Return a test or embedding transport placed on app state, if any."""
    state_obj = cast("object", app.state)
    transport_obj = cast("object | None", getattr(state_obj, "fetch_transport", None))
    if transport_obj is None:
        return None
    if not isinstance(transport_obj, FetchTransport):
        raise StartupTransportError.invalid_transport()
    return transport_obj


def _clear_runtime_state(app: FastAPI) -> None:
    """Remove runtime objects from app state after lifespan shutdown."""
    state = cast("object", app.state)
    if hasattr(state, "runtime"):
        delattr(state, "runtime")
