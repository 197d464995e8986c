"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinic_reports import __version__
from clinic_reports.config.settings import get_settings
from clinic_reports.config.logging_config import setup_logging, get_logger
from clinic_reports.api.routes import reports
from clinic_reports.reporting.layout import register_fonts
from clinic_reports.storage.blob_store import close_blob_store

# Get settings
settings = get_settings()

# Initialize logging
setup_logging(log_level=settings.log_level, json_logs=settings.app_env != "development")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Clinic Report Service")

    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase storage not configured, attachments will render as placeholders")

    if settings.pdf_font_path:
        try:
            register_fonts(settings.pdf_font_path, settings.pdf_bold_font_path)
        except Exception as e:
            logger.error("Failed to register PDF fonts, using Helvetica", path=settings.pdf_font_path, error=str(e))

    yield

    logger.info("Shutting down Clinic Report Service")
    try:
        await close_blob_store()
        logger.info("Blob store closed")
    except Exception as e:
        logger.warning("Failed to close blob store", error=str(e))


# Create FastAPI app
app = FastAPI(
    title="Clinic Report Service",
    description="CSV and PDF exports of patient, clinician, appointment and dashboard data",
    version=__version__,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-Requested-With"],
    expose_headers=["Content-Disposition"],
)


# Exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler — logs details server-side, returns generic message to client."""
    error_id = str(uuid.uuid4())[:8]
    logger.error(
        "Unhandled exception",
        error_id=error_id,
        error=str(exc),
        path=request.url.path,
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "error_id": error_id}
    )


# Include routers
app.include_router(reports.router, prefix="/api")


@app.get("/health")
async def health_check():
    """Liveness check; does not contact storage."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "components": {
            "storage_configured": bool(settings.supabase_url),
        }
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Clinic Report Service",
        "version": __version__,
        "description": "CSV and PDF exports of clinic records",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "clinic_reports.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app_env == "development"
    )
