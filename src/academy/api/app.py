"""FastAPI application with lifespan, service wiring and error mapping."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from academy.api.routes import field_keys, health, marksheets
from academy.core.config import AppSettings
from academy.core.exceptions import (
    AcademyError,
    CacheError,
    DuplicatePlaceholderError,
    IncompleteMarksError,
    NoDataError,
    NotFoundError,
    StoreIOError,
    ValidationRejectedError,
)
from academy.core.logging_config import configure_logging
from academy.core.protocols import ICacheBackend, IDocumentStore
from academy.discovery.discoverer import SchemaDiscoverer
from academy.discovery.labels import IdentifierPredicate
from academy.persistence import MemoryCacheBackend, create_persistence
from academy.services.field_mapping import FieldMappingStore
from academy.services.marksheets import MarksheetService

logger = logging.getLogger(__name__)

# Most specific first.
_STATUS_CODES: list[tuple[type[AcademyError], int]] = [
    (DuplicatePlaceholderError, 409),
    (NotFoundError, 404),
    (ValidationRejectedError, 400),
    (StoreIOError, 503),
    (CacheError, 503),
]


async def academy_error_handler(request: Request, exc: AcademyError) -> JSONResponse:
    if isinstance(exc, NoDataError):
        return JSONResponse(
            status_code=200,
            content={"success": False, "noData": True, "message": str(exc), "count": 0, "keys": []},
        )

    status_code = next((code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)

    content: dict = {"success": False, "error": str(exc)}
    if isinstance(exc, IncompleteMarksError):
        content["incompleteStudents"] = exc.incomplete_students
    return JSONResponse(status_code=status_code, content=content)


def install_services(app: FastAPI, settings: AppSettings,
                     store: IDocumentStore, cache: ICacheBackend) -> None:
    """Build the services once and attach them to ``app.state``."""
    discoverer = SchemaDiscoverer(store, settings.discovery)
    app.state.settings = settings
    app.state.store = store
    app.state.cache = cache
    app.state.field_mapping = FieldMappingStore(
        store,
        discoverer,
        cache=cache,
        identifiers=IdentifierPredicate(settings.discovery.identifier_pattern),
        cache_ttl=settings.catalog.cache_ttl,
    )
    app.state.marksheets = MarksheetService(store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize application resources unless they were injected up front."""
    if not hasattr(app.state, "field_mapping"):
        settings = AppSettings()
        configure_logging(settings.log_level, json_logs=settings.log_json)
        store, cache = create_persistence(settings)
        install_services(app, settings, store, cache)
        logger.info("Academy API started (%s, store=%s)", settings.environment, settings.store.backend)
    yield


def create_app(
    settings: AppSettings | None = None,
    store: IDocumentStore | None = None,
    cache: ICacheBackend | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Passing ``store`` wires the services immediately, which is how tests
    inject in-memory backends.
    """
    app = FastAPI(
        title="Academy Field Keys and Marksheets",
        version="0.1.0",
        lifespan=lifespan,
    )
    if store is not None:
        settings = settings or AppSettings()
        install_services(app, settings, store, cache or MemoryCacheBackend())

    app.add_exception_handler(AcademyError, academy_error_handler)
    app.include_router(health.router)
    app.include_router(field_keys.router)
    app.include_router(marksheets.router)
    return app
