import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from feedapi.cache import cache
from feedapi.config import settings
from feedapi.errors import AssemblyError, FeedError, ValidationError
from feedapi.middleware import TimingMiddleware
from feedapi.routers import metrics, posts

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: the API works without Redis, connect() logs and carries on.
    await cache.connect()
    yield
    # Shutdown
    await cache.disconnect()

app = FastAPI(
    title="Post Feed API",
    description="Denormalized post feed with naive vs batched fetch strategies and round-trip instrumentation",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

# Routers
app.include_router(posts.router)
app.include_router(metrics.router)

@app.exception_handler(FeedError)
async def feed_error_handler(request: Request, exc: FeedError):
    code, status_code = exc.code, exc.status_code
    if isinstance(exc, AssemblyError):
        code, status_code = exc.cause_code, exc.cause_status_code
    if status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, code, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": exc.message}},
    )

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed query parameters share the ValidationError envelope.
    message = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return await feed_error_handler(request, ValidationError(message))

@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}
