import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fc_ingestion.routers.router import router
from fc_ingestion.core.lifespan import lifespan
from fc_ingestion.core.config import settings
from fc_ingestion.core.logger import logger
from fc_ingestion.core.rate_limiter import limiter

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    Admin surface of the FC ingestion worker, for manual smoke testing.

    - **POST /ingest** - enqueue a JSON body wrapped in an envelope
    - **GET /messages** - peek at up to 10 queued messages (not deleted)
    - **DELETE /messages/{receipt_handle}** - acknowledge a message
    - **GET /stats**, **GET /records/...** - read processed outcomes
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Request/Response logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    log_data = {
        "method": request.method,
        "path": request.url.path,
        "status_code": response.status_code,
        "duration_ms": int(duration * 1000),
        "client": request.client.host if request.client else "unknown"
    }

    # Only log non-health-check requests
    if request.url.path != "/health":
        logger.info(f"Request: {log_data}")

    return response

# Include routers
app.include_router(router)

# Root endpoint
@app.get("/", response_class=PlainTextResponse, tags=["Root"])
async def root():
    return "FC Ingestion Service is running!"


def serve() -> None:
    """Console entry point: serve the admin app with uvicorn."""
    uvicorn.run(
        "fc_ingestion.main:app",
        host=settings.ADMIN_HOST,
        port=settings.ADMIN_PORT,
        log_level="debug" if settings.debug_enabled else "info",
    )
