"""
ETL Scheduler
Garantiza una sola ejecución del ETL a la vez (single-flight) y permite
ejecutarlo periódicamente
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from shared.utils.logger import get_logger

from .etl_service import ETLService, PipelineResult

logger = get_logger(__name__)


class ETLScheduler:
    """
    Punto de entrada único para lanzar etapas del ETL

    Si ya hay una ejecución en curso, una nueva invocación registra un
    warning y devuelve None sin encolarse ni bloquear.
    """

    def __init__(self, etl_service: ETLService):
        self.etl_service = etl_service
        self._running = False
        self.last_result: Optional[PipelineResult] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @asynccontextmanager
    async def _single_flight(self, job: str) -> AsyncIterator[Optional[PipelineResult]]:
        """
        Adquiere el flag de ejecución

        Entrega None si ya estaba tomado. Se libera en cualquier salida
        (éxito, excepción, cancelación).
        """
        if self._running:
            logger.warning("etl_already_running_skipping", job=job)
            yield None
            return

        self._running = True
        result = PipelineResult()
        logger.info("etl_job_started", job=job)

        try:
            yield result
        except Exception as e:
            result.failed = True
            logger.error(
                "etl_job_failed",
                job=job,
                error=str(e),
                error_type=type(e).__name__
            )
            raise
        finally:
            result.finished_at = datetime.now()
            self.last_result = result
            self._running = False
            logger.info(
                "etl_job_finished",
                job=job,
                total_errors=result.total_errors,
                duration_seconds=result.duration_seconds,
                failed=result.failed
            )

    # =============================================
    # JOBS
    # =============================================

    async def run_symbols_only(self, exchange: str = "US") -> Optional[PipelineResult]:
        async with self._single_flight("symbols") as result:
            if result is None:
                return None
            result.stages.append(await self.etl_service.fetch_and_store_symbols(exchange))
            return result

    async def run_fundamentals_only(self) -> Optional[PipelineResult]:
        async with self._single_flight("fundamentals") as result:
            if result is None:
                return None
            result.stages.append(await self.etl_service.fetch_and_store_fundamentals())
            return result

    async def run_prices_only(self, days: int = 30) -> Optional[PipelineResult]:
        async with self._single_flight("prices") as result:
            if result is None:
                return None
            result.stages.append(await self.etl_service.fetch_and_store_historical_prices(days))
            return result

    async def run_full_pipeline(self, days: int = 730, exchange: str = "US") -> Optional[PipelineResult]:
        """Símbolos -> fundamentales -> precios, estrictamente en ese orden"""
        async with self._single_flight("full") as result:
            if result is None:
                return None
            result.stages.append(await self.etl_service.fetch_and_store_symbols(exchange))
            result.stages.append(await self.etl_service.fetch_and_store_fundamentals())
            result.stages.append(await self.etl_service.fetch_and_store_historical_prices(days))
            return result

    # =============================================
    # PERIODIC LOOP
    # =============================================

    async def run_periodic(self, interval_seconds: float, days: int = 730, exchange: str = "US"):
        """Pipeline completo cada `interval_seconds`; solo termina al cancelarse"""
        logger.info("etl_periodic_started", interval_seconds=interval_seconds, days=days)

        while True:
            try:
                await self.run_full_pipeline(days=days, exchange=exchange)
            except asyncio.CancelledError:
                logger.info("etl_periodic_cancelled")
                raise
            except Exception as e:
                logger.error(
                    "etl_periodic_run_failed",
                    error=str(e),
                    error_type=type(e).__name__
                )

            try:
                await asyncio.sleep(interval_seconds)
            except asyncio.CancelledError:
                logger.info("etl_periodic_cancelled")
                raise
