"""
FastAPI application entry point for the annotation service.

Provides REST API for:
- Rendering canvas annotations onto an uploaded PDF
- Storing the annotated result as an attempt attachment
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from annotator import __version__
from annotator.config import settings
from annotator.routers import annotations
from annotator.services.canvas_annotation import AnnotationError


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting annotation service...")

    # Ensure directories exist
    for dir_path in [settings.storage_dir, settings.tmp_dir]:
        Path(dir_path).mkdir(parents=True, exist_ok=True)

    logger.info(
        f"Annotation service started (unit={settings.unit}, max PDF version={settings.max_pdf_version}, "
        f"unknown objects={settings.unknown_object_policy})"
    )
    yield

    # Shutdown
    logger.info("Shutting down annotation service...")


# Create FastAPI application
app = FastAPI(
    title="Canvas Annotator",
    description="Overlays browser canvas annotations onto PDF documents",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AnnotationError, annotations.annotation_error_handler)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "unit": settings.unit,
    }


app.include_router(annotations.router, prefix="/api/v1/annotations", tags=["annotations"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "annotator.main:app",
        host="0.0.0.0",
        port=8080,
        reload=settings.debug,
    )
