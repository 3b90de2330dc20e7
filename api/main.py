"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, stats, occupations, locations, salary, search, sitemap
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.database import create_engine_from_settings, create_session_factory
from core.logging import setup_logging
from ingestion.scheduler import FreshnessScheduler
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="SalaryScout API",
    description="Occupational salary data by occupation and metro area (BLS OEWS)",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)


# Include routers
app.include_router(health.router)
app.include_router(stats.router)
app.include_router(occupations.router)
app.include_router(locations.router)
app.include_router(salary.router)
app.include_router(search.router)
app.include_router(sitemap.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting SalaryScout API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    app.state.engine = create_engine_from_settings()
    app.state.session_factory = create_session_factory(app.state.engine)
    app.state.scheduler = None

    if settings.ENABLE_SCHEDULER:
        app.state.scheduler = FreshnessScheduler(app.state.session_factory)
        app.state.scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down SalaryScout API")

    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.stop()

    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.dispose()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "SalaryScout API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "stats": "/stats",
            "metadata": "/metadata",
            "occupations": "/occupations",
            "locations": "/locations",
            "salary": "/salary/{occupation}/{location}",
            "search": "/api/search",
            "sitemap": "/sitemap.xml"
        }
    }
