"""Main FastAPI application for Dashboard Service"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .models import HealthCheckResponse
from .routes import dashboards, sessions, widgets
from .services.dashboard_service import get_dashboard_service

# Set up logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed built-in templates on startup, close storage on shutdown"""
    logger.info(f"Starting {settings.SERVICE_NAME} with {settings.STORAGE_BACKEND} storage")
    if settings.SEED_TEMPLATES:
        try:
            await get_dashboard_service().seed_templates()
            logger.info("✅ Dashboard templates ready")
        except Exception as e:
            logger.error(f"❌ Failed to seed dashboard templates: {e}")

    yield

    logger.info("Shutting down services...")
    try:
        await get_dashboard_service().close()
    except Exception as e:
        logger.error(f"❌ Error shutting down services: {e}")


# Create FastAPI app
app = FastAPI(
    title=settings.SERVICE_NAME,
    description="Custom dashboard layout and widget configuration service",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routes
app.include_router(dashboards.router)
app.include_router(sessions.router)
app.include_router(widgets.router)


@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Health check endpoint"""
    try:
        dependencies = await get_dashboard_service().health_check()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        dependencies = {"storage": "unhealthy"}

    status = "healthy" if all(v == "healthy" for v in dependencies.values()) else "degraded"

    return HealthCheckResponse(
        status=status,
        service=settings.SERVICE_NAME,
        version="1.0.0",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        dependencies=dependencies
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.SERVICE_NAME,
        "version": "1.0.0",
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "dashboard_service.main:app",
        host=settings.SERVICE_HOST,
        port=settings.SERVICE_PORT,
        reload=True
    )
