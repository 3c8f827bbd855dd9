"""
Pytest configuration and fixtures for Stock Screener tests.
"""

import asyncio
import uuid
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pytest

from shared.models.finnhub import BasicFinancials, CandleSeries, CompanyProfile, SymbolRecord
from shared.models.stocks import PriceBar
from shared.utils.rate_limiter import RateLimiter


class InMemoryStockRepository:
    """
    Test double of StockRepository

    Same method surface and ordering rules as the SQL implementation.
    Every call is recorded in `calls`.
    """

    def __init__(self):
        self.stocks: Dict[str, Dict[str, Any]] = {}
        self.pe_ratios: Dict[tuple, float] = {}
        self.prices: Dict[tuple, PriceBar] = {}
        self.calls: List[str] = []
        self.fail_symbols: set = set()
        self.fail_price_dates: set = set()
        self.fail_reads = False

    # helpers for tests

    def add_stock(self, symbol: str, name: Optional[str] = None, sector=None, industry=None) -> str:
        stock_id = str(uuid.uuid4())
        self.stocks[symbol] = {
            "id": stock_id,
            "symbol": symbol,
            "name": name or f"{symbol} Inc",
            "sector": sector,
            "industry": industry,
            "market_cap": None,
        }
        return stock_id

    def add_pe(self, symbol: str, ratio: float, day: date):
        self.pe_ratios[(self.stocks[symbol]["id"], day)] = ratio

    def add_bar(self, symbol: str, day: date, close: float):
        stock_id = self.stocks[symbol]["id"]
        self.prices[(stock_id, day)] = PriceBar(
            stock_id=stock_id, date=day, open=close, high=close, low=close, close=close, volume=1000
        )

    def by_id(self, stock_id: str) -> Dict[str, Any]:
        return next(s for s in self.stocks.values() if s["id"] == stock_id)

    def _record(self, name: str):
        self.calls.append(name)
        if self.fail_reads and name.startswith(("count_", "fetch_")):
            raise ConnectionError("database unavailable")

    def _filtered(self, sector, industry) -> List[Dict[str, Any]]:
        return [
            s for s in sorted(self.stocks.values(), key=lambda s: s["symbol"])
            if (not sector or s["sector"] == sector) and (not industry or s["industry"] == industry)
        ]

    def _latest_pe(self, stock_id: str) -> Optional[float]:
        days = [d for (sid, d) in self.pe_ratios if sid == stock_id]
        return self.pe_ratios[(stock_id, max(days))] if days else None

    def _closes(self, stock_id: str) -> List[float]:
        bars = sorted(
            (bar for (sid, _), bar in self.prices.items() if sid == stock_id),
            key=lambda b: b.date,
            reverse=True,
        )
        return [bar.close for bar in bars[:2]]

    # StockRepository surface

    async def ensure_schema(self):
        self._record("ensure_schema")

    async def list_stocks(self):
        self._record("list_stocks")
        return [{"id": s["id"], "symbol": s["symbol"]} for s in self._filtered(None, None)]

    async def create_stock_if_absent(self, symbol: str, name: str) -> bool:
        self._record("create_stock_if_absent")
        await asyncio.sleep(0)
        if symbol in self.fail_symbols:
            raise ConnectionError(f"insert failed for {symbol}")
        if symbol in self.stocks:
            return False
        self.add_stock(symbol, name)
        return True

    async def upsert_stock(self, symbol, name, sector=None, industry=None, market_cap=None) -> str:
        self._record("upsert_stock")
        if symbol not in self.stocks:
            self.add_stock(symbol, name)
        self.stocks[symbol].update(name=name, sector=sector, industry=industry, market_cap=market_cap)
        return self.stocks[symbol]["id"]

    async def update_market_cap(self, stock_id: str, market_cap: int):
        self._record("update_market_cap")
        self.by_id(stock_id)["market_cap"] = market_cap

    async def update_sector(self, stock_id: str, sector: str):
        self._record("update_sector")
        self.by_id(stock_id)["sector"] = sector

    async def insert_pe_ratio_if_absent(self, stock_id: str, ratio: float, day: date) -> bool:
        self._record("insert_pe_ratio_if_absent")
        if (stock_id, day) in self.pe_ratios:
            return False
        self.pe_ratios[(stock_id, day)] = ratio
        return True

    async def upsert_price(self, bar: PriceBar):
        self._record("upsert_price")
        if bar.date in self.fail_price_dates:
            raise ConnectionError(f"upsert failed for {bar.date}")
        self.prices[(bar.stock_id, bar.date)] = bar

    async def count_stocks(self, sector=None, industry=None) -> int:
        self._record("count_stocks")
        return len(self._filtered(sector, industry))

    async def count_stocks_with_pe(self, sector=None, industry=None) -> int:
        self._record("count_stocks_with_pe")
        return sum(1 for s in self._filtered(sector, industry) if self._latest_pe(s["id"]) is not None)

    async def fetch_pe_page(self, sort_by, sort_order, offset, limit, sector=None, industry=None, require_pe=True):
        self._record("fetch_pe_page")
        rows = [
            {**s, "pe_ratio": self._latest_pe(s["id"])}
            for s in self._filtered(sector, industry)
        ]
        if require_pe:
            rows = [r for r in rows if r["pe_ratio"] is not None]

        column = {"peRatio": "pe_ratio", "symbol": "symbol", "name": "name"}[sort_by]
        present = [r for r in rows if r[column] is not None]
        missing = [r for r in rows if r[column] is None]
        present.sort(key=lambda r: r[column], reverse=sort_order == "desc")
        return (present + missing)[offset:offset + limit]

    async def fetch_recent_closes(self, sector=None, industry=None, offset=None, limit=None, require_pair=False):
        self._record("fetch_recent_closes")
        rows = [
            {**s, "closes": self._closes(s["id"])}
            for s in self._filtered(sector, industry)
        ]
        if require_pair:
            rows = [r for r in rows if len(r["closes"]) == 2]
        if offset is not None and limit is not None:
            rows = rows[offset:offset + limit]
        return rows


class FakeFinnhubClient:
    """
    Test double of FinnhubClient

    Tracks how many calls are in flight at once.
    """

    def __init__(self, delay: float = 0.0):
        self.symbols: List[SymbolRecord] = []
        self.financials: Dict[str, BasicFinancials] = {}
        self.profiles: Dict[str, CompanyProfile] = {}
        self.candles: Dict[str, CandleSeries] = {}
        self.symbols_error: Optional[Exception] = None
        self.delay = delay
        self.calls: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _track(self, call: tuple):
        self.calls.append(call)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    async def get_symbols(self, exchange: str = "US"):
        await self._track(("symbols", exchange))
        if self.symbols_error:
            raise self.symbols_error
        return list(self.symbols)

    async def get_basic_financials(self, symbol: str, metric: str = "all"):
        await self._track(("financials", symbol))
        return self.financials.get(symbol)

    async def get_company_profile(self, symbol: str):
        await self._track(("profile", symbol))
        return self.profiles.get(symbol)

    async def get_candles(self, symbol: str, resolution: str = "D", from_epoch: int = 0, to_epoch: int = 0):
        await self._track(("candles", symbol, resolution, from_epoch, to_epoch))
        return self.candles.get(symbol)

    async def close(self):
        pass


@pytest.fixture
def make_symbol():
    """Factory for symbol list entries"""
    def factory(display_symbol: str, type_: str = "Common Stock", description: str = "") -> SymbolRecord:
        return SymbolRecord(
            symbol=display_symbol,
            display_symbol=display_symbol,
            description=description or f"{display_symbol} CORP",
            type=type_,
        )
    return factory


@pytest.fixture
def repository() -> InMemoryStockRepository:
    return InMemoryStockRepository()


@pytest.fixture
def finnhub() -> FakeFinnhubClient:
    return FakeFinnhubClient()


@pytest.fixture
def fast_limiter() -> RateLimiter:
    """No spacing between admissions, sequential execution"""
    return RateLimiter(interval_ms=0, max_concurrent=1)


@pytest.fixture
def today() -> date:
    from shared.utils.dates import today_bucket
    return today_bucket()


@pytest.fixture
def yesterday(today) -> date:
    return today - timedelta(days=1)


@pytest.fixture
def ranked_repository(repository, today, yesterday) -> InMemoryStockRepository:
    """
    Five instruments:
    - AAA: P/E 15.3, 155 -> 150
    - BBB: P/E 25.5, 310 -> 300
    - CCC: P/E 8.0, 100 -> 90 (Finance)
    - DDD: no P/E, one bar
    - EEE: no data at all
    """
    repository.add_stock("AAA", "Alpha Corp", sector="Technology", industry="Software")
    repository.add_stock("BBB", "beta Inc", sector="Technology", industry="Hardware")
    repository.add_stock("CCC", "Gamma Bank", sector="Finance", industry="Banking")
    repository.add_stock("DDD", "Delta Co", sector="Technology", industry="Software")
    repository.add_stock("EEE", "Epsilon Ltd", sector="Finance", industry="Banking")

    repository.add_pe("AAA", 15.3, today)
    repository.add_pe("BBB", 25.5, today)
    repository.add_pe("CCC", 8.0, today)

    repository.add_bar("AAA", yesterday, 155)
    repository.add_bar("AAA", today, 150)
    repository.add_bar("BBB", yesterday, 310)
    repository.add_bar("BBB", today, 300)
    repository.add_bar("CCC", yesterday, 100)
    repository.add_bar("CCC", today, 90)
    repository.add_bar("DDD", today, 42)

    repository.calls.clear()
    return repository


@pytest.fixture
def slow_finnhub() -> FakeFinnhubClient:
    """Fake client whose calls take 10ms, for concurrency checks"""
    return FakeFinnhubClient(delay=0.01)
