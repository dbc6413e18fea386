"""
FastAPI application for the pipeline board service.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.features.pipeline.api.router import router as pipeline_router
from app.features.pipeline.repository.actions_client import PipelineApiClient
from app.features.pipeline.services.pipeline_session import PipelineSession
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware import RequestContextMiddleware
from app.routes import health

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the collaborator client and board session; close the client on shutdown."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    client = PipelineApiClient()
    session = PipelineSession(client, actor=settings.PIPELINE_ACTOR)
    app.state.pipeline_client = client
    app.state.pipeline_session = session

    if settings.PIPELINE_JOB_ID is not None:
        try:
            await session.refresh(settings.PIPELINE_JOB_ID)
        except Exception as e:
            # Board stays empty; /readyz reports the collaborator state
            logger.error("Initial board load failed", job_id=settings.PIPELINE_JOB_ID, error=str(e))

    logger.info("Pipeline session initialized", stages=len(session.graph), applications=len(session.store))

    yield

    logger.info("Application shutting down")
    try:
        await client.close()
    except Exception as e:
        logger.error("Error closing pipeline API client", error=str(e))
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Pipeline Board",
    description="Recruiting pipeline and bulk-operation engine",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(pipeline_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
        request_id=getattr(request.state, "request_id", None),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
