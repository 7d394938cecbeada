"""PriceWatch - FastAPI Backend"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from slowapi.middleware import SlowAPIMiddleware

from app.api import alerts, functions, health, products, searches
from app.core.config import settings
from app.core.database import engine
from app.core.errors import ConfigurationError, SearchNotFoundError, StoreError
from app.core.logging_config import setup_logging

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    # Startup - initialize database
    from app.core.database import init_db
    await init_db()

    # Seed catalog products
    if settings.SEED_ON_STARTUP:
        from app.services.seed_service import seed_data
        await seed_data()

    from app.core.scheduler import start_scheduler, shutdown_scheduler
    start_scheduler()

    yield
    # Shutdown
    shutdown_scheduler()
    await engine.dispose()


app = FastAPI(
    title="PriceWatch API",
    description="Price history and price drop alerts for tracked Amazon searches",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS for the mobile/web client
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SearchNotFoundError)
async def search_not_found_handler(request: Request, exc: SearchNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.warning("Store error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc), "retryable": True})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": f"Server misconfigured: {exc}"})


# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(functions.router, prefix="/api/v1/functions", tags=["Functions"])
app.include_router(searches.router, prefix="/api/v1/searches", tags=["Searches"])
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
app.include_router(alerts.router, prefix="/api/v1/alerts", tags=["Alerts"])
