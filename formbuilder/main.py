"""
Main FastAPI application
Form builder with auto-graded responses and per-form analytics
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import time

from formbuilder.config import settings
from formbuilder.database import Database
from formbuilder.api import forms, responses
from formbuilder.exceptions import APIError
from formbuilder.utils.rate_limiter import RateLimitExceeded, rate_limiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _error_body(message: str, errors=None, **extra) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Acquire the database handle on startup, release it on shutdown"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    database = Database(settings.DATABASE_URL, echo=settings.DB_ECHO)
    try:
        database.connect()
        database.init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        database.dispose()
        raise

    app.state.database = database
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application")
    database.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Build categorize, cloze and comprehension forms, collect graded responses and view analytics",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting middleware
    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        """Apply rate limiting to API requests"""

        if not request.url.path.startswith("/api"):
            return await call_next(request)

        try:
            await rate_limiter.check_rate_limit(request)
        except RateLimitExceeded as e:
            return JSONResponse(
                status_code=e.status_code,
                content=_error_body(e.message, retryAfter=e.retry_after),
                headers={"Retry-After": str(e.retry_after)},
            )

        return await call_next(request)

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing"""

        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Duration: {duration:.3f}s"
        )

        return response

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Render API errors as {success: false, message, errors?}"""
        debug = exc.debug if exc.status_code >= 500 and not settings.is_production else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.errors, error=debug),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Format framework HTTP errors (unknown route, wrong method) consistently"""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies and query parameters are client errors"""
        errors = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            message = error.get("msg", "Invalid value")
            errors.append(f"{location}: {message}" if location else message)

        logger.warning(f"Request validation failed on {request.url.path}: {errors}")
        return JSONResponse(status_code=400, content=_error_body("Validation failed", errors))

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors gracefully"""

        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content=_error_body(
                "An unexpected error occurred. Please try again later.",
                error=None if settings.is_production else str(exc),
            ),
        )

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring"""
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": time.time()
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "message": "Form Builder API",
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health"
        }

    # Include routers
    app.include_router(forms.router)
    app.include_router(responses.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "formbuilder.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production
    )
