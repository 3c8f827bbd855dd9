"""
Servicio de rankings: P/E más bajo y mayores caídas

Dos modos (settings.ranking_mode):
- global: el valor derivado se calcula para toda la población filtrada y
  después se ordena y pagina. total = instrumentos rankeables.
- window: la base de datos pagina primero sobre todos los instrumentos
  filtrados; los que no tienen datos se descartan de la ventana y las caídas
  se reordenan solo dentro de ella. total = instrumentos filtrados. Una
  página puede traer menos de `limit` filas y el orden solo es correcto
  localmente.

En ambos modos el ranking P/E ordena por la observación más reciente. La
versión anterior ordenaba la ventana por el mínimo histórico de cada
instrumento mientras mostraba el último ratio; eso no se conserva.
"""

from typing import Optional

from shared.config.settings import settings
from shared.models.stocks import (
    StockQuery,
    LowPEResponse,
    LargestDeclinesResponse,
)
from shared.utils.logger import get_logger

from .errors import InternalServerError
from .pagination import build_pagination, slice_page
from .ranking import build_decline_rows, build_pe_rows, sort_declines
from .repository import StockRepository

logger = get_logger(__name__)

RANKING_MODES = ("global", "window")


class StocksService:
    """
    Rankings paginados sobre los datos persistidos por el ETL (solo lectura)
    """

    def __init__(self, repository: StockRepository, ranking_mode: Optional[str] = None):
        mode = ranking_mode or settings.ranking_mode
        if mode not in RANKING_MODES:
            raise ValueError(f"Unknown ranking mode: {mode}")
        self.repository = repository
        self.ranking_mode = mode

    # =============================================
    # LOWEST P/E
    # =============================================

    async def get_lowest_pe(self, query: StockQuery) -> LowPEResponse:
        try:
            if self.ranking_mode == "global":
                total = await self.repository.count_stocks_with_pe(query.sector, query.industry)
                require_pe = True
            else:
                total = await self.repository.count_stocks(query.sector, query.industry)
                require_pe = False

            rows = await self.repository.fetch_pe_page(
                sort_by=query.sort_by,
                sort_order=query.sort_order,
                offset=query.offset,
                limit=query.limit,
                sector=query.sector,
                industry=query.industry,
                require_pe=require_pe,
            )
        except Exception as e:
            logger.error(
                "low_pe_query_failed",
                error=str(e),
                error_type=type(e).__name__,
                mode=self.ranking_mode
            )
            raise InternalServerError("Failed to fetch stocks with low PE ratio") from e

        data = build_pe_rows(rows)

        logger.debug(
            "low_pe_ranked",
            mode=self.ranking_mode,
            page=query.page,
            returned=len(data),
            total=total
        )

        return LowPEResponse(
            data=data,
            pagination=build_pagination(total, query.page, query.limit),
        )

    # =============================================
    # LARGEST DECLINES
    # =============================================

    async def get_largest_declines(self, query: StockQuery) -> LargestDeclinesResponse:
        try:
            if self.ranking_mode == "global":
                rows = await self.repository.fetch_recent_closes(
                    sector=query.sector,
                    industry=query.industry,
                    require_pair=True,
                )
            else:
                total = await self.repository.count_stocks(query.sector, query.industry)
                rows = await self.repository.fetch_recent_closes(
                    sector=query.sector,
                    industry=query.industry,
                    offset=query.offset,
                    limit=query.limit,
                )
        except Exception as e:
            logger.error(
                "largest_declines_query_failed",
                error=str(e),
                error_type=type(e).__name__,
                mode=self.ranking_mode
            )
            raise InternalServerError("Failed to fetch stocks with largest declines") from e

        ranked = sort_declines(build_decline_rows(rows), query.sort_by, query.sort_order)

        if self.ranking_mode == "global":
            total = len(ranked)
            data = slice_page(ranked, query.offset, query.limit)
        else:
            # La ventana ya viene paginada desde la base de datos
            data = ranked[:query.limit]

        logger.debug(
            "largest_declines_ranked",
            mode=self.ranking_mode,
            page=query.page,
            returned=len(data),
            total=total
        )

        return LargestDeclinesResponse(
            data=data,
            pagination=build_pagination(total, query.page, query.limit),
        )
