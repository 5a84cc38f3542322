import sys
import logging
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from reportsonic.api.routes import router
from reportsonic.api.metrics import router as metrics_router
from reportsonic.core.config import Settings, get_settings
from reportsonic.core.errors import ErrorCodes, get_error_response
from reportsonic.core.logging import configure_logging
from reportsonic.core.middleware import CorrelationIDMiddleware, TimeoutMiddleware

logger = logging.getLogger(__name__)


def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """429 with the structured error body and a Retry-After hint."""
    correlation_id = getattr(request.state, 'correlation_id', 'unknown')
    body = get_error_response(ErrorCodes.RATE_LIMIT_EXCEEDED)
    body['correlation_id'] = correlation_id
    retry_after = getattr(exc, 'retry_after', None) or 60
    return JSONResponse(
        status_code=429,
        content=body,
        headers={"Retry-After": str(retry_after), "X-Correlation-ID": correlation_id}
    )


def create_app(settings: Settings) -> FastAPI:
    """Build the API with its limiter, middleware stack and routers."""
    app = FastAPI(
        title="Report Sonic API",
        description="Dataset profiling, chart recommendations and multi-provider analysis",
        version="1.0.0"
    )

    # Routes read both from app state
    app.state.limiter = Limiter(key_func=get_remote_address)
    app.state.settings = settings
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    # Last added runs first: correlation ids wrap everything, the timeout
    # sits closest to the routes
    app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
        expose_headers=["X-Correlation-ID", "X-Response-Time"]
    )
    app.add_middleware(CorrelationIDMiddleware)

    app.include_router(router, prefix="/api")
    app.include_router(metrics_router, prefix="/api")

    @app.get("/")
    async def root():
        return {"message": "Report Sonic API is running"}

    logger.info(f"CORS allowed origins: {settings.allowed_origins_list}")
    logger.info(f"Analysis providers configured: {settings.configured_providers or 'fallback only'}")
    return app


load_dotenv()

try:
    settings = get_settings()
except Exception as e:
    logging.basicConfig(level=logging.ERROR)
    logger.error(f"Failed to load configuration: {e}")
    sys.exit(1)

configure_logging(settings.log_level)
app = create_app(settings)
logger.info("Application started successfully")
