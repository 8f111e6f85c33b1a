from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .clients.open_cloud import OpenCloudDataStoreClient
from .credentials.cache import CredentialCache
from .errors import http_exception_handler, unhandled_exception_handler, validation_error_handler
from .middleware import RequestContextMiddleware
from .observability.logging import configure_logging, get_logger
from .pipeline.handler import EntryViewHandler
from .presentation.limits import layout_from_settings, limits_from_settings
from .presentation.planner import PresentationPlanner
from .routers.health import router as health_router
from .routers.integrations_slack import router as slack_router
from .settings import settings


def build_entry_view_handler() -> tuple[EntryViewHandler, CredentialCache, OpenCloudDataStoreClient]:
    credentials = CredentialCache.from_settings(settings)
    client = OpenCloudDataStoreClient.from_settings(settings, credentials)
    planner = PresentationPlanner(limits_from_settings(settings), layout=layout_from_settings(settings))
    handler = EntryViewHandler(credentials=credentials, client=client, planner=planner)
    return handler, credentials, client


def create_app(handler: EntryViewHandler | None = None) -> FastAPI:
    # Logging must be configured before the app starts handling requests.
    configure_logging(level=settings.log_level)
    log = get_logger("startup")

    client: OpenCloudDataStoreClient | None = None
    credentials: CredentialCache | None = None
    if handler is None:
        handler, credentials, client = build_entry_view_handler()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        if client is not None:
            await client.aclose()

    app = FastAPI(
        title="Datastore Viewer",
        version="1.0.0",
        default_response_class=ORJSONResponse,
        redirect_slashes=False,
        lifespan=lifespan,
    )
    app.state.entry_view_handler = handler
    app.state.credentials = credentials

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Outermost: request context (request-id) wraps everything.
    app.add_middleware(RequestContextMiddleware, exclude_paths={"/"})

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router)
    app.include_router(slack_router, prefix="/api/integrations")

    return app


app = create_app()
