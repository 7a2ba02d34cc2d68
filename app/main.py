from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.routers import ai, jobs, public, resumes

# Import logging and middleware
from app.utils import config
from app.utils.logging_config import configure_for_environment, get_logger
from app.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
    VersionHeaderMiddleware,
    register_exception_handlers,
)

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info(f"{config.APP_NAME} {config.APP_VERSION} starting up ({config.ENVIRONMENT})")

    try:
        from app.services.db import init_indexes
        await init_indexes()
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")
        logger.info("Application will continue - some operations may be slower without indexes")

    yield

    logger.info(f"{config.APP_NAME} shutting down")


app = FastAPI(title=config.APP_NAME, version=config.APP_VERSION, lifespan=lifespan)

register_exception_handlers(app)

# Middleware runs last-added first; the exception handler stays outermost
app.add_middleware(VersionHeaderMiddleware)
app.add_middleware(PerformanceMiddleware, slow_request_threshold=10.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ExceptionHandlerMiddleware)


@app.get("/")
@app.head("/")
async def root():
    return {"message": f"Welcome to the {config.APP_NAME}", "version": config.APP_VERSION, "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


app.include_router(public.router, prefix="/api/public", tags=["public"])
app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(ai.router, prefix="/api/ai", tags=["ai"])
app.include_router(resumes.router, prefix="/api/resumes", tags=["resumes"])

logger.info(f"{config.APP_NAME} initialized")
