import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from apiai_fulfillment.config import SETTINGS_JSON_ENV, Settings, configure_logging, get_settings
from apiai_fulfillment.core.intent_registry import IntentRegistry, register_from_config
from apiai_fulfillment.dynamic_router import build_router
from apiai_fulfillment.errors import FulfillmentError, IntentNotFoundError, RequestDecodeError
from apiai_fulfillment.middleware.request_id import RequestIDMiddleware
from apiai_fulfillment.middleware.timing import TimingMiddleware

logger = logging.getLogger("main_app")


# -----------------------------------------------------------------------------
# Error rendering
# -----------------------------------------------------------------------------
async def fulfillment_error_handler(request: Request, exc: FulfillmentError) -> PlainTextResponse:
    if isinstance(exc, RequestDecodeError):
        logger.info(exc.message)
    elif isinstance(exc, IntentNotFoundError):
        logger.warning(exc.message)
    return PlainTextResponse(exc.message, status_code=exc.status_code)


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------
def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[IntentRegistry] = None,
) -> FastAPI:
    """Build the webhook app.

    With no ``registry`` a fresh one is created and filled from the intents
    section of the settings; a supplied registry is used as-is.
    """
    settings = settings or get_settings()
    if registry is None:
        registry = IntentRegistry()
        wired = register_from_config(registry, settings.intents)
        logger.info(f"Registered intents from config: {wired}")

    app = FastAPI(title=settings.meta.app_name, version=settings.meta.version)
    app.state.settings = settings
    app.state.registry = registry

    app.add_exception_handler(FulfillmentError, fulfillment_error_handler)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(TimingMiddleware, slow_ms=settings.logging.slow_request_threshold_ms)
    app.include_router(build_router(settings))
    return app


def create_worker_app() -> FastAPI:
    """App factory for uvicorn reload and worker processes."""
    settings = get_settings()
    configure_logging(settings)
    return create_app(settings)


def run(settings: Optional[Settings] = None) -> None:
    import uvicorn

    settings = settings or get_settings()
    configure_logging(settings)
    server = settings.server
    if server.reload or server.workers > 1:
        # uvicorn needs an import string to reload or fork workers; the
        # child processes read the settings back from the environment
        os.environ[SETTINGS_JSON_ENV] = settings.model_dump_json()
        uvicorn.run(
            "apiai_fulfillment.main:create_worker_app",
            factory=True,
            host=server.host,
            port=server.port,
            reload=server.reload,
            workers=server.workers,
        )
    else:
        uvicorn.run(create_app(settings), host=server.host, port=server.port)
