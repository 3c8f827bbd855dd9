"""
Stock Screener Service - Main Application

API de rankings sobre los datos cargados por el ETL:
- /api/stocks/low-pe
- /api/stocks/largest-declines
- /api/etl/status
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config.settings import settings
from shared.utils.db_client import DatabaseClient
from shared.utils.logger import configure_logging, get_logger

from . import __version__
from .api import stocks_router
from .api.middleware import RequestLoggingMiddleware
from .api.routes import set_scheduler, set_stocks_service
from .errors import AppError
from .etl_service import ETLService
from .http_clients import http_clients
from .repository import StockRepository
from .scheduler import ETLScheduler
from .stocks_service import StocksService

SERVICE_NAME = "stock-screener"

configure_logging(service_name=SERVICE_NAME)
logger = get_logger(__name__)

# Global clients
db_client: Optional[DatabaseClient] = None
scheduler_task: Optional[asyncio.Task] = None

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    503: "SERVICE_UNAVAILABLE",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Inicializa DB, clientes HTTP, servicios y (opcional) el ETL periódico"""
    global db_client, scheduler_task

    logger.info(
        "stock_screener_starting",
        environment=settings.environment,
        ranking_mode=settings.ranking_mode
    )

    db_client = DatabaseClient()
    await db_client.connect()

    repository = StockRepository(db_client)
    await repository.ensure_schema()
    set_stocks_service(StocksService(repository))

    await http_clients.initialize()
    scheduler = ETLScheduler(ETLService(repository, http_clients.finnhub))
    set_scheduler(scheduler)

    if settings.etl_schedule_enabled:
        interval = settings.etl_schedule_interval_hours * 3600
        scheduler_task = asyncio.create_task(
            scheduler.run_periodic(interval, days=settings.etl_price_days, exchange=settings.etl_exchange)
        )
        logger.info("etl_schedule_enabled", interval_hours=settings.etl_schedule_interval_hours)

    logger.info("stock_screener_started", port=settings.api_port)

    yield

    logger.info("stock_screener_shutting_down")

    if scheduler_task:
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass
        scheduler_task = None

    set_scheduler(None)
    set_stocks_service(None)
    await http_clients.close()

    if db_client:
        await db_client.disconnect()
        db_client = None

    logger.info("stock_screener_stopped")


app = FastAPI(
    title="Stock Screener API",
    description="Rankings de acciones por P/E y por caída de precio",
    version=__version__,
    lifespan=lifespan,
    docs_url="/api-docs",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.cors_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(stocks_router)


# ============================================================================
# Exception handlers
# ============================================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("app_error", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": code, "message": message}}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": {"code": "VALIDATION_ERROR", "message": "Invalid request parameters"}}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}}
    )


# ============================================================================
# Health
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    db_ok = await db_client.health_check() if db_client else False
    return {
        "status": "healthy" if db_ok else "degraded",
        "service": SERVICE_NAME,
        "version": __version__,
        "database": "connected" if db_ok else "disconnected",
    }


def run():
    """Entry point del servidor"""
    uvicorn.run(
        "services.stock_screener.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
