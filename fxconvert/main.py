import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .routers import convert, health, rates
from .services.rates.conversion import Converter


def create_app(
    settings_override: Settings | None = None, converter: Converter | None = None
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment. Falls back to cached get_settings().
    converter: pre-built Converter (tests inject one backed by a static source).
    Otherwise one is built here, which performs the initial rate fetch.
    """
    settings = settings_override or get_settings()
    # Initialize logging early, stamped with the converter identity
    init_logging(
        debug=settings.debug,
        default_currency=converter.default_currency if converter else settings.default_currency,
        rate_source=converter.source.name if converter else settings.rate_source,
    )

    if converter is None:
        try:
            converter = Converter(settings=settings)
        except errors.InitializationError:
            # No rates means nothing to serve; fatal at startup
            logging.getLogger("fxconvert").exception("failed to load rates on startup")
            raise

    app = FastAPI(
        title=settings.app_name, debug=settings.debug, version=settings.version
    )
    app.state.converter = converter

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(errors.ParseError, errors.parse_error_handler)
    app.add_exception_handler(errors.FetchError, errors.fetch_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(convert.router)
    app.include_router(rates.router)

    @app.get("/")
    async def root():
        return {
            "message": settings.app_name,
            "version": settings.version,
            "default_currency": converter.default_currency,
        }

    return app
