#!/usr/bin/env python3
"""
Synapse Matching API - FastAPI Application

Thin HTTP layer over the matching service. Authentication happens in
front of this service; the acting user arrives in the X-User-Id header.

Usage:
    python -m web.backend.app

Then open:
    - http://localhost:8080/docs - API Documentation (Swagger UI)
    - http://localhost:8080/redoc - Alternative API Documentation
"""

import logging

from fastapi import FastAPI, HTTPException

from core.exceptions import MatchingError
from .config import get_config
from .exceptions import (
    matching_exception_handler,
    value_error_handler,
    http_exception_handler,
    general_exception_handler
)
from .rate_limit import add_rate_limit_handlers
from .routers import (
    requests_router,
    matches_router,
    admin_router,
    profiles_router
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Synapse Matching API",
        description="Request matching, match responses and rematching",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # Configure rate limiting
    add_rate_limit_handlers(app)

    # Register exception handlers
    app.add_exception_handler(MatchingError, matching_exception_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers
    app.include_router(requests_router)
    app.include_router(matches_router)
    app.include_router(admin_router)
    app.include_router(profiles_router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "synapse-matching"}

    return app


app = create_app()


def main():
    """Run the web server."""
    import uvicorn

    config = get_config()
    logger.info(f"Starting Synapse Matching API on {config.web.host}:{config.web.port}")
    logger.info(f"API Docs: http://{config.web.host}:{config.web.port}/docs")

    uvicorn.run(
        "web.backend.app:app",
        host=config.web.host,
        port=config.web.port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
