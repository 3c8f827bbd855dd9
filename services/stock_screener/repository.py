"""
Repositorio de acciones sobre PostgreSQL

Tablas:
- stocks             instrumentos (symbol único)
- pe_ratios          observaciones P/E, única por (stock_id, date)
- historical_prices  barras OHLCV diarias, única por (stock_id, date)

El ETL es el único escritor; StocksService solo lee.
"""

from datetime import date
from typing import Optional, List, Dict, Any, Tuple

from shared.models.stocks import PriceBar
from shared.utils.db_client import DatabaseClient
from shared.utils.logger import get_logger

logger = get_logger(__name__)


# Columnas ordenables del ranking P/E (whitelist: se interpolan en el SQL)
PE_SORT_COLUMNS = {
    "peRatio": "lp.ratio",
    "symbol": "s.symbol",
    "name": "s.name",
}

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS stocks (
        id              UUID                PRIMARY KEY DEFAULT gen_random_uuid(),
        symbol          VARCHAR(32)         NOT NULL UNIQUE,
        name            TEXT                NOT NULL,
        sector          VARCHAR(100),
        industry        VARCHAR(100),
        market_cap      BIGINT,
        created_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
        updated_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pe_ratios (
        id              BIGSERIAL           PRIMARY KEY,
        stock_id        UUID                NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
        ratio           DOUBLE PRECISION    NOT NULL,
        date            DATE                NOT NULL,
        created_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
        UNIQUE (stock_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS historical_prices (
        id              BIGSERIAL           PRIMARY KEY,
        stock_id        UUID                NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
        date            DATE                NOT NULL,
        open            DOUBLE PRECISION    NOT NULL,
        high            DOUBLE PRECISION    NOT NULL,
        low             DOUBLE PRECISION    NOT NULL,
        close           DOUBLE PRECISION    NOT NULL,
        volume          BIGINT              NOT NULL,
        created_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
        updated_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
        UNIQUE (stock_id, date)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_stocks_sector ON stocks (sector)",
    "CREATE INDEX IF NOT EXISTS idx_stocks_industry ON stocks (industry)",
    "CREATE INDEX IF NOT EXISTS idx_pe_ratios_stock_date ON pe_ratios (stock_id, date DESC)",
    "CREATE INDEX IF NOT EXISTS idx_historical_prices_stock_date ON historical_prices (stock_id, date DESC)",
]


def build_filters(
    sector: Optional[str],
    industry: Optional[str],
    conditions: Optional[List[str]] = None,
) -> Tuple[str, List[Any]]:
    """
    WHERE con igualdad exacta sobre sector/industry

    Returns:
        (clausula_where, args) con placeholders $1..$n
    """
    clauses = list(conditions or [])
    args: List[Any] = []

    if sector:
        args.append(sector)
        clauses.append(f"s.sector = ${len(args)}")
    if industry:
        args.append(industry)
        clauses.append(f"s.industry = ${len(args)}")

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, args


class StockRepository:
    """
    Acceso a datos de stocks, P/E y precios históricos
    """

    def __init__(self, db: DatabaseClient):
        self.db = db

    async def ensure_schema(self) -> None:
        """Crea tablas e índices si no existen (idempotente)"""
        for statement in SCHEMA_STATEMENTS:
            await self.db.execute(statement)
        logger.info("schema_ready", tables=["stocks", "pe_ratios", "historical_prices"])

    # =============================================
    # STOCKS
    # =============================================

    async def list_stocks(self) -> List[Dict[str, Any]]:
        """Todos los instrumentos (id + symbol)"""
        return await self.db.fetch(
            "SELECT id::text AS id, symbol FROM stocks ORDER BY symbol"
        )

    async def create_stock_if_absent(self, symbol: str, name: str) -> bool:
        """
        Inserta el instrumento si no existe

        Returns:
            True si se insertó, False si ya existía
        """
        stock_id = await self.db.fetchval(
            """
            INSERT INTO stocks (symbol, name)
            VALUES ($1, $2)
            ON CONFLICT (symbol) DO NOTHING
            RETURNING id
            """,
            symbol,
            name
        )
        return stock_id is not None

    async def upsert_stock(
        self,
        symbol: str,
        name: str,
        sector: Optional[str] = None,
        industry: Optional[str] = None,
        market_cap: Optional[int] = None,
    ) -> str:
        """Inserta o actualiza un instrumento completo; devuelve su id"""
        stock_id = await self.db.fetchval(
            """
            INSERT INTO stocks (symbol, name, sector, industry, market_cap)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (symbol) DO UPDATE SET
                name = EXCLUDED.name,
                sector = EXCLUDED.sector,
                industry = EXCLUDED.industry,
                market_cap = EXCLUDED.market_cap,
                updated_at = NOW()
            RETURNING id::text
            """,
            symbol,
            name,
            sector,
            industry,
            market_cap
        )
        return stock_id

    async def update_market_cap(self, stock_id: str, market_cap: int) -> None:
        await self.db.execute(
            "UPDATE stocks SET market_cap = $2, updated_at = NOW() WHERE id = $1::uuid",
            stock_id,
            market_cap
        )

    async def update_sector(self, stock_id: str, sector: str) -> None:
        await self.db.execute(
            "UPDATE stocks SET sector = $2, updated_at = NOW() WHERE id = $1::uuid",
            stock_id,
            sector
        )

    # =============================================
    # P/E RATIOS
    # =============================================

    async def insert_pe_ratio_if_absent(self, stock_id: str, ratio: float, day: date) -> bool:
        """
        Inserta la observación del día si no existe (nunca sobrescribe)

        Returns:
            True si se insertó
        """
        result = await self.db.execute(
            """
            INSERT INTO pe_ratios (stock_id, ratio, date)
            VALUES ($1::uuid, $2, $3)
            ON CONFLICT (stock_id, date) DO NOTHING
            """,
            stock_id,
            ratio,
            day
        )
        return result.endswith(" 1")

    # =============================================
    # HISTORICAL PRICES
    # =============================================

    async def upsert_price(self, bar: PriceBar) -> None:
        """Inserta la barra o sobrescribe OHLCV si ya existe ese día"""
        await self.db.execute(
            """
            INSERT INTO historical_prices (stock_id, date, open, high, low, close, volume)
            VALUES ($1::uuid, $2, $3, $4, $5, $6, $7)
            ON CONFLICT (stock_id, date) DO UPDATE SET
                open = EXCLUDED.open,
                high = EXCLUDED.high,
                low = EXCLUDED.low,
                close = EXCLUDED.close,
                volume = EXCLUDED.volume,
                updated_at = NOW()
            """,
            bar.stock_id,
            bar.date,
            bar.open,
            bar.high,
            bar.low,
            bar.close,
            bar.volume
        )

    # =============================================
    # RANKING READS
    # =============================================

    async def count_stocks(self, sector: Optional[str] = None, industry: Optional[str] = None) -> int:
        """Instrumentos que cumplen los filtros"""
        where, args = build_filters(sector, industry)
        return await self.db.fetchval(f"SELECT COUNT(*) FROM stocks s {where}", *args)

    async def count_stocks_with_pe(self, sector: Optional[str] = None, industry: Optional[str] = None) -> int:
        """Instrumentos con al menos una observación P/E"""
        where, args = build_filters(
            sector,
            industry,
            ["EXISTS (SELECT 1 FROM pe_ratios p WHERE p.stock_id = s.id)"]
        )
        return await self.db.fetchval(f"SELECT COUNT(*) FROM stocks s {where}", *args)

    async def fetch_pe_page(
        self,
        sort_by: str,
        sort_order: str,
        offset: int,
        limit: int,
        sector: Optional[str] = None,
        industry: Optional[str] = None,
        require_pe: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        Página de instrumentos con su P/E más reciente

        El orden se resuelve en SQL. Con require_pe=False se incluyen
        instrumentos sin observaciones (pe_ratio NULL, al final).
        """
        column = PE_SORT_COLUMNS.get(sort_by, PE_SORT_COLUMNS["peRatio"])
        direction = "DESC" if sort_order == "desc" else "ASC"
        join = "JOIN" if require_pe else "LEFT JOIN"

        where, args = build_filters(sector, industry)
        args.extend([offset, limit])

        query = f"""
            SELECT s.id::text AS id, s.symbol, s.name, s.sector, s.industry,
                   lp.ratio AS pe_ratio
            FROM stocks s
            {join} LATERAL (
                SELECT p.ratio
                FROM pe_ratios p
                WHERE p.stock_id = s.id
                ORDER BY p.date DESC
                LIMIT 1
            ) lp ON TRUE
            {where}
            ORDER BY {column} {direction} NULLS LAST, s.symbol ASC
            OFFSET ${len(args) - 1} LIMIT ${len(args)}
        """
        return await self.db.fetch(query, *args)

    async def fetch_recent_closes(
        self,
        sector: Optional[str] = None,
        industry: Optional[str] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        require_pair: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Instrumentos con sus dos cierres más recientes (closes[0] = último)

        Sin offset/limit devuelve toda la población filtrada.
        """
        conditions = []
        if require_pair:
            conditions.append(
                "(SELECT COUNT(*) FROM (SELECT 1 FROM historical_prices hp "
                "WHERE hp.stock_id = s.id LIMIT 2) pair) = 2"
            )
        where, args = build_filters(sector, industry, conditions)

        paging = ""
        if offset is not None and limit is not None:
            args.extend([offset, limit])
            paging = f"OFFSET ${len(args) - 1} LIMIT ${len(args)}"

        query = f"""
            SELECT s.id::text AS id, s.symbol, s.name, s.sector, s.industry,
                   ARRAY(
                       SELECT hp.close
                       FROM historical_prices hp
                       WHERE hp.stock_id = s.id
                       ORDER BY hp.date DESC
                       LIMIT 2
                   ) AS closes
            FROM stocks s
            {where}
            ORDER BY s.symbol ASC
            {paging}
        """
        return await self.db.fetch(query, *args)
