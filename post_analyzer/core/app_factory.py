from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
the startup sequence so tests can inject a container built around doubles.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from post_analyzer.api.routes import health_router, posts_router
from post_analyzer.core.config import settings
from post_analyzer.core.container import ServiceContainer
from post_analyzer.core.exception_handlers import setup_exception_handlers
from post_analyzer.core.logging import configure_logging
from post_analyzer.core.middleware import request_id_middleware


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    The container's startup sequence runs in the lifespan hook, so the server
    only accepts requests once the broker connection, queue declaration,
    database check and consumer registration have all succeeded. A failure in
    any step propagates and aborts startup.

    Args:
        container: Pre-built service container; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    container = container or ServiceContainer.build(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await container.start()
        try:
            yield
        finally:
            await container.stop()

    app = FastAPI(
        title="Post Analyzer API",
        description=(
            "Accepts text posts, analyzes them asynchronously through a durable "
            "queue (word count and average word length) and serves the results "
            "through a read-through cache. Requests are throttled per client."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.container = container

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(posts_router)
    app.include_router(health_router)

    return app
