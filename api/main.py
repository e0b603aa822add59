"""
FastAPI application for the Excel records system.

This module creates and configures the FastAPI application, registering
routers, middleware, and exception handlers.
"""

import importlib
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config import settings
from api.routers import workbook_router
from api.schemas.common import ErrorResponse, HealthCheckResponse
from backend.models.registry import list_record_types
from services.exceptions import (
    EmptyInputError, ExcelMappingError, OpenError, RecordTypeNotFoundError,
    RowIteratorError, SheetNotFoundError, UnsupportedRecordTypeError
)

# Configure logging
handlers = [logging.StreamHandler()]
if settings.LOG_FILE:
    handlers.append(logging.FileHandler(settings.LOG_FILE))

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT,
    handlers=handlers
)

logger = logging.getLogger(__name__)

# HTTP status for each mapping error
ERROR_STATUS = {
    OpenError: status.HTTP_400_BAD_REQUEST,
    EmptyInputError: status.HTTP_400_BAD_REQUEST,
    SheetNotFoundError: status.HTTP_404_NOT_FOUND,
    RecordTypeNotFoundError: status.HTTP_404_NOT_FOUND,
    UnsupportedRecordTypeError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    RowIteratorError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def load_record_modules():
    """Import configured modules so their record types register themselves."""
    for module_name in settings.RECORD_MODULES:
        importlib.import_module(module_name)
        logger.info(f"Loaded record module: {module_name}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.API_TITLE} v{settings.API_VERSION}")
    load_record_modules()
    logger.info(f"Record types: {list_record_types()}")

    yield

    # Shutdown
    logger.info("Shutting down application")


# Create FastAPI application
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS
)


# Exception handlers

@app.exception_handler(ExcelMappingError)
async def mapping_exception_handler(request: Request, exc: ExcelMappingError):
    """Translate mapping errors into HTTP errors."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = code
            break

    if status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc}", exc_info=True)
    else:
        logger.warning(f"{type(exc).__name__}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=str(exc),
            detail={"type": type(exc).__name__},
            path=str(request.url)
        ).model_dump(mode='json')
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail={"message": str(exc)} if settings.DEBUG else None,
            path=str(request.url)
        ).model_dump(mode='json')
    )


# Register routers with API prefix
app.include_router(workbook_router.router, prefix=settings.API_PREFIX)


# Root endpoints

@app.get('/', include_in_schema=False)
async def root():
    """
    Root endpoint - point to docs.
    """
    return {
        'message': f'Welcome to {settings.API_TITLE}',
        'version': settings.API_VERSION,
        'docs': '/docs',
        'redoc': '/redoc',
        'openapi': '/openapi.json'
    }


@app.get('/health', response_model=HealthCheckResponse, tags=['health'])
async def health_check():
    """
    Health check endpoint.

    **Returns:**
    - Overall health status
    - Number of registered record types
    - Timestamp and version
    """
    return HealthCheckResponse(
        status='healthy',
        timestamp=datetime.utcnow(),
        version=settings.API_VERSION,
        record_types=len(list_record_types())
    )


@app.get('/api/ping', tags=['health'])
async def ping():
    """
    Simple ping endpoint for load balancers.

    **Returns:**
    ```json
    {"ping": "pong"}
    ```
    """
    return {'ping': 'pong'}


# Middleware for request logging

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.info(f"{request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} - {response.status_code}")
    return response


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'api.main:app',
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
