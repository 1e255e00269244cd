"""FastAPI application entry point"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator

from galleria import __version__
from galleria.api import auth, comments, galleries, health, images
from galleria.config import settings
from galleria.database import SessionLocal, init_db
from galleria.errors import GalleriaError
from galleria.middleware.rate_limit import limiter
from galleria.utils.logger import logger, setup_logging
from galleria.utils.sessions import build_session_manager
from galleria.utils.storage import ImageStore

# Setup logging
setup_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    if settings.AUTO_CREATE_TABLES:
        init_db()

    # Fails fast on signing-key misconfiguration
    app.state.sessions = build_session_manager(settings, SessionLocal)
    app.state.image_store = ImageStore(settings.UPLOAD_DIR)
    app.state.image_store.ensure_root()

    logger.info("Galleria backend starting up", extra={
        "version": __version__,
        "environment": settings.HOST,
        "log_level": settings.LOG_LEVEL,
        "revocation_backend": settings.REVOCATION_BACKEND,
        "rate_limiting": settings.RATE_LIMIT_ENABLED,
        "monitoring": settings.METRICS_ENABLED
    })
    yield
    # Shutdown
    logger.info("Galleria backend shutting down")


# Create FastAPI app
app = FastAPI(
    title="Galleria",
    description="Multi-user image galleries with JWT sessions and cursor pagination",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ===== Middleware Setup =====

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Monitoring middleware
if settings.METRICS_ENABLED:
    from galleria.middleware.monitoring import MonitoringMiddleware
    app.add_middleware(MonitoringMiddleware)

    # Prometheus metrics
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health", "/health/ready", "/health/live"],
        inprogress_name="galleria_requests_inprogress",
        inprogress_labels=True
    )
    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint=settings.METRICS_PATH, include_in_schema=False)

# Rate limiting; the decorated routes look the limiter up even when it is disabled
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors"""
    logger.warning(
        "Rate limit exceeded",
        extra={
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please try again later.",
            "detail": str(exc.detail)
        }
    )

# ===== Route Setup =====

# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(galleries.router)
app.include_router(images.router)
app.include_router(comments.router)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "service": "Galleria",
        "version": __version__,
        "status": "operational",
        "docs": "/docs",
        "health": "/health",
        "metrics": settings.METRICS_PATH if settings.METRICS_ENABLED else None
    }


# ===== Error Handlers =====

@app.exception_handler(GalleriaError)
async def galleria_error_handler(request: Request, exc: GalleriaError):
    """Render application errors as ``{error, message[, field]}``"""
    if exc.status_code >= 500:
        logger.error(exc.message, extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for uncaught errors"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method
        },
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred."
        }
    )
