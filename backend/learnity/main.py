"""
Learnity API application.

Run with ``uvicorn learnity.main:app`` from the backend directory.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from learnity.core.config import settings
from learnity.core.database import DatabaseManager, SessionLocal, check_database_connection, init_db
from learnity.core.errors import register_exception_handlers
from learnity.routers import api_router


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed defaults on startup."""
    logger.info(f"Starting {settings.PROJECT_NAME} API...")
    if settings.TESTING:
        logger.info("Skipping database setup during tests")
    else:
        DatabaseManager.create_all_tables()
        db = SessionLocal()
        try:
            init_db(db)
        finally:
            db.close()
    yield
    logger.info(f"Shutting down {settings.PROJECT_NAME} API...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.DESCRIPTION,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_exception_handlers(app)

# Routers
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": f"{settings.PROJECT_NAME} API", "version": settings.VERSION}


@app.get("/health")
async def health_check():
    """Health check endpoint with database connectivity test."""
    if check_database_connection():
        return {"status": "healthy", "database": "connected", "version": settings.VERSION}

    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "database": "disconnected", "version": settings.VERSION},
    )
