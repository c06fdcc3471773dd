import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from routers.router import router
from core.lifespan import lifespan
from core.config import settings
from core.logger import logger
from core.rate_limiter import limiter

# CORS configuration
if settings.ENABLE_CORS:
    origins = [
        settings.FRONTEND_ENDPOINT,
        settings.BACKEND_ENDPOINT,
    ]
else:
    origins = ["*"]

# Initialize FastAPI app
app = FastAPI(
    title="Task Integrator",
    description="""
    Bridges Amazon Mechanical Turk and Amazon SNS.

    ## Trigger Endpoints

    **POST /api/v1/ingest** - Create one HIT per row of CSV uploads (S3 event body)

    **POST /api/v1/relay** - Drain the MTurk notification queue and publish answers to SNS

    **GET /api/v1/balance** - Requester account balance

    ### Headers:
    - **Request**: `Authorization: Bearer <service-jwt>`, `x-request-id` (optional)
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
    if not request.url.path.endswith("/health"):
        logger.info(f"Request: {log_data}")

    return response

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router)

# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    return {
        "service": settings.PROJECT_NAME,
        "stack": settings.STACK_NAME,
        "version": "1.0.0",
        "status": "running",
        "documentation": "/docs"
    }
