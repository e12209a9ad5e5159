from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from recruitflow.api import deps
from recruitflow.api.v1 import applications, catalog, websocket
from recruitflow.core.broadcaster import broadcaster
from recruitflow.core.config import settings
from recruitflow.core.exceptions import WorkflowError
from recruitflow.core.logging import configure_logging
from recruitflow.core.redis_client import close_redis_pool
from recruitflow.utils.status_catalog import status_catalog

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.app_env)
    logger.info(
        f"Status catalog loaded: {len(status_catalog.all_states())} statuses, "
        f"{len(status_catalog.rules())} transition rules"
    )

    if deps.event_relay is not None:
        await deps.event_relay.start_listener()

    yield

    if deps.event_relay is not None:
        await deps.event_relay.stop_listener()
        await close_redis_pool()


app = FastAPI(
    title="Recruitflow API",
    description="Application lifecycle workflow engine with audit trail and live dashboard updates",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include API routers
app.include_router(applications.router, prefix="/api/v1/applications", tags=["Applications"])
app.include_router(catalog.router, prefix="/api/v1/catalog", tags=["Catalog"])
# WebSocket endpoint for live status updates
app.include_router(websocket.router, tags=["WebSocket"])


@app.get("/healthz")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "version": VERSION,
        "subscriptions": broadcaster.get_connection_count(),
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Recruitflow API", "docs": "/docs"}
