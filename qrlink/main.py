"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes
- Middleware (request logging, no-store headers, CORS)
- Exception handlers
- Application metadata

Run with:
    uvicorn qrlink.main:app
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from qrlink.api import endpoints
from qrlink.core.logging_config import setup_logging
from qrlink.core.setting import settings
from qrlink.db.session import init_models
from qrlink.middleware.headers import add_no_store_middleware
from qrlink.middleware.logging import add_logging_middleware

logger = logging.getLogger(__name__)

app = FastAPI(
    title="QR Link Service",
    description="Expiring short links for QR codes, with in-app browser aware redirects",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

add_no_store_middleware(app)
add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or mistyped request bodies are client errors (400)."""
    logger.info(f"Rejected request body on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request body"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all for unexpected failures; details stay in the log."""
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# Health endpoints defined before router to match before catch-all route
@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint for health checks.

    Returns:
        Simple JSON response indicating service is running
    """
    return {
        "message": "QR Link Service",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["QR Links"])


@app.on_event("startup")
async def startup_event():
    """Configure logging and make sure tables exist."""
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Starting QR Link Service ({settings.ENV_SETTING.value})")
    if settings.AUTO_CREATE_TABLES:
        await init_models()
