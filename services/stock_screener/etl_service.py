"""
ETL Service - Carga de datos de Finnhub en PostgreSQL

Tres etapas independientes:
- A: símbolos del exchange -> stocks
- B: fundamentales (P/E, market cap) -> pe_ratios / stocks
- C: velas diarias -> historical_prices

Cada etapa procesa en lotes de `batch_size`: dentro de un lote las tareas
corren concurrentemente, los lotes son secuenciales. Toda llamada externa
pasa por el RateLimiter. Los fallos por registro incrementan `errors` y no
abortan la etapa.
"""

import asyncio
import math
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from shared.config.settings import settings
from shared.models.finnhub import CandleSeries
from shared.models.stocks import PriceBar
from shared.utils.dates import lookback_window, to_daily_bucket, today_bucket
from shared.utils.logger import get_logger
from shared.utils.rate_limiter import RateLimiter

from .http_clients import FinnhubClient
from .repository import StockRepository

logger = get_logger(__name__)

T = TypeVar("T")

# Campos de /stock/metric candidatos a P/E, en orden de preferencia
PE_RATIO_FIELDS = ("10P", "P/E")
MARKET_CAP_FIELD = "marketCapitalization"
MARKET_CAP_SCALE = 1_000_000


@dataclass
class ETLStats:
    """Contadores de una ejecución de etapa"""
    stage: str = ""
    symbols_processed: int = 0
    symbols_created: int = 0
    fundamentals_processed: int = 0
    prices_processed: int = 0
    errors: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "symbolsProcessed": self.symbols_processed,
            "symbolsCreated": self.symbols_created,
            "fundamentalsProcessed": self.fundamentals_processed,
            "pricesProcessed": self.prices_processed,
            "errors": self.errors,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "durationSeconds": self.duration_seconds,
        }


@dataclass
class PipelineResult:
    """Resultado agregado de una ejecución (una o varias etapas)"""
    stages: List[ETLStats] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    failed: bool = False

    @property
    def total_errors(self) -> int:
        return sum(s.errors for s in self.stages)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stages": [s.to_dict() for s in self.stages],
            "totalErrors": self.total_errors,
            "failed": self.failed,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "durationSeconds": self.duration_seconds,
        }


class ETLService:
    """
    Pipeline ETL de símbolos, fundamentales y precios históricos

    `stats` expone siempre el registro de la última etapa ejecutada.
    """

    def __init__(
        self,
        repository: StockRepository,
        finnhub_client: FinnhubClient,
        rate_limiter: Optional[RateLimiter] = None,
        batch_size: Optional[int] = None,
        enrich_profiles: Optional[bool] = None,
    ):
        self.repository = repository
        self.finnhub = finnhub_client
        self.rate_limiter = rate_limiter or RateLimiter(
            interval_ms=settings.etl_rate_limit_ms,
            max_concurrent=settings.etl_max_concurrent,
        )
        self.batch_size = batch_size or settings.etl_batch_size
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.enrich_profiles = (
            settings.etl_enrich_profiles if enrich_profiles is None else enrich_profiles
        )
        self.stats = ETLStats()

    # =============================================
    # HELPERS
    # =============================================

    def _reset_stats(self, stage: str) -> ETLStats:
        self.stats = ETLStats(stage=stage)
        return self.stats

    def _finish(self, stats: ETLStats) -> ETLStats:
        stats.end_time = datetime.now()
        logger.info("etl_stage_completed", **stats.to_dict())
        return stats

    async def _run_batches(
        self,
        stage: str,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[None]],
    ) -> None:
        """
        Ejecuta `worker` sobre `items` en lotes secuenciales

        El lote N+1 empieza solo cuando todas las tareas del lote N terminan.
        """
        total = len(items)
        total_batches = math.ceil(total / self.batch_size) if total else 0

        for index in range(0, total, self.batch_size):
            batch = items[index:index + self.batch_size]
            batch_start = time.time()

            await asyncio.gather(*(worker(item) for item in batch))

            logger.info(
                "etl_batch_completed",
                stage=stage,
                batch=index // self.batch_size + 1,
                total_batches=total_batches,
                processed=min(index + self.batch_size, total),
                total=total,
                errors=self.stats.errors,
                elapsed_ms=round((time.time() - batch_start) * 1000, 2)
            )

    # =============================================
    # STAGE A: SYMBOLS
    # =============================================

    async def fetch_and_store_symbols(self, exchange: str = "US") -> ETLStats:
        """Descarga la lista de símbolos y crea los instrumentos que falten"""
        stats = self._reset_stats("symbols")
        logger.info("etl_symbols_starting", exchange=exchange)

        try:
            symbols = await self.rate_limiter.execute(
                lambda: self.finnhub.get_symbols(exchange)
            )

            if not symbols:
                logger.warning("etl_no_symbols_received", exchange=exchange)
                return self._finish(stats)

            common = [s for s in symbols if s.is_common_stock]
            logger.info(
                "etl_symbols_filtered",
                received=len(symbols),
                common_stock=len(common)
            )

            async def store(record) -> None:
                stats.symbols_processed += 1
                try:
                    created = await self.repository.create_stock_if_absent(
                        record.display_symbol,
                        record.description
                    )
                    if created:
                        stats.symbols_created += 1
                except Exception as e:
                    stats.errors += 1
                    logger.error(
                        "etl_symbol_store_failed",
                        symbol=record.display_symbol,
                        error=str(e)
                    )

            await self._run_batches("symbols", common, store)

        except Exception as e:
            stats.errors += 1
            logger.error("etl_symbols_stage_failed", exchange=exchange, error=str(e))

        return self._finish(stats)

    # =============================================
    # STAGE B: FUNDAMENTALS
    # =============================================

    async def fetch_and_store_fundamentals(self) -> ETLStats:
        """P/E del día y market cap para cada instrumento"""
        stats = self._reset_stats("fundamentals")
        logger.info("etl_fundamentals_starting", enrich_profiles=self.enrich_profiles)

        try:
            stocks = await self.repository.list_stocks()
            day = today_bucket()

            async def process(stock: Dict[str, Any]) -> None:
                stats.fundamentals_processed += 1
                try:
                    await self._store_fundamentals(stock["id"], stock["symbol"], day)
                    if self.enrich_profiles:
                        await self._store_profile(stock["id"], stock["symbol"])
                except Exception as e:
                    stats.errors += 1
                    logger.error(
                        "etl_fundamentals_failed",
                        symbol=stock["symbol"],
                        error=str(e)
                    )

            await self._run_batches("fundamentals", stocks, process)

        except Exception as e:
            stats.errors += 1
            logger.error("etl_fundamentals_stage_failed", error=str(e))

        return self._finish(stats)

    async def _store_fundamentals(self, stock_id: str, symbol: str, day: date) -> None:
        financials = await self.rate_limiter.execute(
            lambda: self.finnhub.get_basic_financials(symbol)
        )
        if not financials or not financials.metric:
            return

        pe_ratio = financials.first_positive(*PE_RATIO_FIELDS)
        if pe_ratio is not None:
            inserted = await self.repository.insert_pe_ratio_if_absent(stock_id, pe_ratio, day)
            if not inserted:
                logger.debug("etl_pe_ratio_exists", symbol=symbol, date=str(day))

        market_cap = financials.metric.get(MARKET_CAP_FIELD)
        if market_cap and market_cap > 0:
            await self.repository.update_market_cap(
                stock_id,
                math.floor(market_cap / MARKET_CAP_SCALE)
            )

    async def _store_profile(self, stock_id: str, symbol: str) -> None:
        profile = await self.rate_limiter.execute(
            lambda: self.finnhub.get_company_profile(symbol)
        )
        if profile and profile.finnhub_industry:
            await self.repository.update_sector(stock_id, profile.finnhub_industry)

    # =============================================
    # STAGE C: HISTORICAL PRICES
    # =============================================

    async def fetch_and_store_historical_prices(self, days: int = 730) -> ETLStats:
        """Velas diarias de los últimos `days` días (upsert por día)"""
        stats = self._reset_stats("prices")
        logger.info("etl_prices_starting", days=days)

        try:
            stocks = await self.repository.list_stocks()

            async def process(stock: Dict[str, Any]) -> None:
                stats.prices_processed += 1
                try:
                    from_epoch, to_epoch = lookback_window(days)
                    candles = await self.rate_limiter.execute(
                        lambda: self.finnhub.get_candles(stock["symbol"], "D", from_epoch, to_epoch)
                    )
                    if not candles or not candles.c:
                        return
                    await self._store_candles(stock["id"], stock["symbol"], candles)
                except Exception as e:
                    stats.errors += 1
                    logger.error(
                        "etl_prices_failed",
                        symbol=stock["symbol"],
                        error=str(e)
                    )

            await self._run_batches("prices", stocks, process)

        except Exception as e:
            stats.errors += 1
            logger.error("etl_prices_stage_failed", error=str(e))

        return self._finish(stats)

    async def _store_candles(self, stock_id: str, symbol: str, candles: CandleSeries) -> None:
        for i in range(len(candles.c)):
            try:
                bar = PriceBar(
                    stock_id=stock_id,
                    date=to_daily_bucket(candles.t[i]),
                    open=candles.o[i],
                    high=candles.h[i],
                    low=candles.l[i],
                    close=candles.c[i],
                    volume=int(candles.v[i]),
                )
                await self.repository.upsert_price(bar)
            except Exception as e:
                self.stats.errors += 1
                logger.error("etl_price_bar_failed", symbol=symbol, index=i, error=str(e))
