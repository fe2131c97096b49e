from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from config import get_settings
from routes import readback
import logging

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the app"""
    # Rule tables are module-level and already compiled at import
    logger.info(f"{settings.app_name} started ({settings.environment})")
    yield
    logger.info(f"{settings.app_name} stopped")

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="ATC readback validation and phraseology error detection",
    version="2.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(readback.router)

@app.get("/")
async def root():
    return {
        "message": settings.app_name,
        "version": "2.0.0",
        "status": "running"
    }

@app.get("/api")
async def api_root():
    return {
        "message": settings.app_name,
        "endpoints": {
            "analyze": "/api/readback/analyze",
            "batch": "/api/readback/analyze/batch",
            "expected": "/api/readback/expected",
            "classify": "/api/readback/classify",
            "phase": "/api/readback/phase",
            "evaluate": "/api/readback/evaluate",
            "transcript": "/api/readback/transcript",
            "export": "/api/readback/export",
            "error_types": "/api/readback/error-types"
        }
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}
