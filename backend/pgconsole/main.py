"""
PG App Console - FastAPI Main Application
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import structlog
import time

from pgconsole.config import settings
from pgconsole.core.errors import GatewayError
from pgconsole.database import Base, app_engine
import pgconsole.models  # noqa: F401  (registers the registry tables)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("application_startup", version=settings.APP_VERSION)

    # Create registry tables
    try:
        Base.metadata.create_all(bind=app_engine)
        logger.info("database_initialized")
    except Exception as e:
        logger.warning("database_init_failed", error=str(e))

    yield

    logger.info("application_shutdown")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="PostgreSQL console with a dynamic schema-driven data gateway",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add request timing to response headers."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# Exception handlers
@app.exception_handler(GatewayError)
async def gateway_exception_handler(request: Request, exc: GatewayError):
    """Render gateway errors as {"error": kind, "message": text}."""
    if exc.status_code >= 500:
        logger.error("gateway_error", kind=exc.kind, error=exc.message, path=request.url.path)
    else:
        logger.info("gateway_error", kind=exc.kind, error=exc.message, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors."""
    logger.warning("validation_error", errors=exc.errors(), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": jsonable_errors(exc),
            "message": "Validation error"
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("unhandled_exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


# Health check endpoint
@app.get("/api/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "app": settings.APP_NAME
    }


# Import and include routers
from pgconsole.api import apps, auth, data, databases, dynamic

# Console routers first: the dynamic router matches any /api/{app_id}/{table}
app.include_router(databases.router, prefix="/api/databases", tags=["Databases"])
app.include_router(data.router, prefix="/api/data", tags=["Data Browser"])
app.include_router(apps.router, prefix="/api/apps", tags=["Apps"])
app.include_router(auth.router, prefix="/api/auth", tags=["App Authentication"])
app.include_router(dynamic.docs_router, tags=["App Documentation"])
app.include_router(dynamic.router, prefix="/api", tags=["Dynamic API"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pgconsole.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
