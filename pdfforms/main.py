"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pdfforms.api import api_router
from pdfforms.core.config import get_settings
from pdfforms.core.exceptions import (
    CatalogCorruption,
    ConcurrentModification,
    NotFound,
    RenderFailure,
    ValidationFailure,
)
from pdfforms.core.logging import configure_logging
from pdfforms.models import init_db
from pdfforms.services.storage import storage_service

settings = get_settings()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    configure_logging(settings)
    await init_db()
    storage_service.ensure_directories()
    logger.info("%s started", settings.app_name)

    yield


app = FastAPI(
    title=settings.app_name,
    description="PDF templates to web forms, with cross-page field identity resolution",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": exc.message, "issues": exc.issues},
    )


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": exc.message, "issues": [f"Not found: {i}" for i in exc.missing_ids]},
    )


@app.exception_handler(ConcurrentModification)
async def concurrent_modification_handler(request: Request, exc: ConcurrentModification):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": str(exc), "issues": []},
    )


@app.exception_handler(CatalogCorruption)
async def catalog_corruption_handler(request: Request, exc: CatalogCorruption):
    logger.error("Catalog corruption on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Field catalog is inconsistent", "issues": [str(exc)]},
    )


@app.exception_handler(RenderFailure)
async def render_failure_handler(request: Request, exc: RenderFailure):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Document could not be processed", "issues": [str(exc)]},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": "0.1.0",
        "docs": "/docs",
    }
