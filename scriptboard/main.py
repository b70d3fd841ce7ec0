"""
FastAPI entrypoint for the Scriptboard API.

The CLI in scriptboard/pipelines/run_pipeline.py drives the same services;
this API exposes them to a UI. Caller identity comes from the X-User-ID
header set by the authenticating gateway.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scriptboard.api.dependencies import scriptboard_error_handler
from scriptboard.api.routes_projects import router as projects_router
from scriptboard.core.config import settings
from scriptboard.core.errors import ScriptboardError
from scriptboard.core.logging_config import get_logger, setup_logging

setup_logging(log_level=settings.log_level, log_file=settings.log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info("=" * 60)
    yield
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Scriptboard - turns scripts into segmented storyboards with stock footage and narration",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ScriptboardError, scriptboard_error_handler)
app.include_router(projects_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "endpoints": {
            "projects": "/projects",
            "storyboard": "/projects/{project_id}/storyboard",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "scriptboard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
