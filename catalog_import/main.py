from contextlib import asynccontextmanager
from fastapi import FastAPI
import logging

from catalog_import.core.config import settings
from catalog_import.db.connection import init_db

# --- Logging Configuration ---
logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)
logger.info(f"Logging configured with level: {settings.LOG_LEVEL.upper()}")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Bulk stock and catalog updates from CSV files, with import history.",
    version="1.0.0",
    lifespan=lifespan,
)

logger.info(f"FastAPI application startup... Environment: {settings.ENVIRONMENT}")

# --- Include REST API routers ---
from catalog_import.routes.imports import router as imports_api_router

app.include_router(imports_api_router, tags=["Imports"])


@app.get("/", tags=["Root"])
async def read_root():
    logger.info("Root path '/' accessed.")
    return {"message": "Welcome to the Catalog Stock Import Service REST API."}
