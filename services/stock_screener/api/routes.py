"""
Stocks API routes
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from shared.config.settings import settings
from shared.models.stocks import LargestDeclinesResponse, LowPEResponse
from shared.utils.logger import get_logger

from ..scheduler import ETLScheduler
from ..stocks_service import StocksService
from .validation import validate_stock_query

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["stocks"])

# Instancias inicializadas en el lifespan de main.py
_stocks_service: Optional[StocksService] = None
_scheduler: Optional[ETLScheduler] = None


def get_stocks_service() -> StocksService:
    """Dependency para obtener el servicio de rankings"""
    if _stocks_service is None:
        raise HTTPException(status_code=503, detail="Stocks service not initialized")
    return _stocks_service


def set_stocks_service(service: Optional[StocksService]):
    global _stocks_service
    _stocks_service = service


def get_scheduler() -> Optional[ETLScheduler]:
    """Dependency del scheduler ETL (None si el proceso no lo levantó)"""
    return _scheduler


def set_scheduler(scheduler: Optional[ETLScheduler]):
    global _scheduler
    _scheduler = scheduler


@router.get("/stocks/low-pe", response_model=LowPEResponse)
async def get_low_pe_stocks(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    sector: Optional[str] = Query(None),
    industry: Optional[str] = Query(None),
    service: StocksService = Depends(get_stocks_service),
):
    """
    Acciones con el P/E más bajo

    - sortBy: peRatio (default), symbol, name
    - sortOrder: asc (default), desc
    - sector / industry: filtro exacto
    """
    query = validate_stock_query(
        "low-pe",
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        sector=sector,
        industry=industry,
    )
    return await service.get_lowest_pe(query)


@router.get("/stocks/largest-declines", response_model=LargestDeclinesResponse)
async def get_largest_declines(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    sector: Optional[str] = Query(None),
    industry: Optional[str] = Query(None),
    service: StocksService = Depends(get_stocks_service),
):
    """
    Acciones con la mayor caída entre los dos últimos cierres

    - sortBy: priceChange (default), symbol, name
    - sortOrder: asc (default, mayores caídas primero), desc
    """
    query = validate_stock_query(
        "largest-declines",
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        sector=sector,
        industry=industry,
    )
    return await service.get_largest_declines(query)


@router.get("/etl/status")
async def get_etl_status(scheduler: Optional[ETLScheduler] = Depends(get_scheduler)):
    """Estado del ETL en este proceso"""
    last_result = scheduler.last_result if scheduler else None
    return {
        "running": scheduler.is_running if scheduler else False,
        "scheduleEnabled": settings.etl_schedule_enabled,
        "lastResult": last_result.to_dict() if last_result else None,
    }
