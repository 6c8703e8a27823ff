from contextlib import asynccontextmanager
from fastapi import FastAPI
from searchable.api.v1 import api
from searchable.core.config import settings
from searchable.database import create_tables, engine
import logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: database tables and engine."""
    # Startup
    try:
        logger.info("Creating database tables...")
        await create_tables()
        logger.info("Database tables ready")
    except Exception as e:
        logger.error(f"Failed to initialize application resources: {str(e)}")
        raise

    yield

    # Shutdown
    try:
        logger.info("Disposing database engine...")
        await engine.dispose()
    except Exception as e:
        logger.error(f"Error during application shutdown: {str(e)}")


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Weighted multi-column relevance search",
    version="1.0.0",
    lifespan=lifespan,
)

# Include API routes
app.include_router(api.router, prefix=settings.API_V1_STR)

@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME} API is running"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}
