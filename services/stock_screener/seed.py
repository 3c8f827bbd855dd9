"""
Datos de ejemplo para desarrollo local

Cinco instrumentos con un P/E de hoy y dos barras diarias (hoy y ayer), lo
mínimo para que ambos rankings devuelvan filas.
"""

import random
from datetime import timedelta
from typing import Dict, List, Optional

from shared.models.stocks import PriceBar
from shared.utils.dates import today_bucket
from shared.utils.logger import get_logger

from .repository import StockRepository

logger = get_logger(__name__)

SAMPLE_STOCKS: List[Dict[str, str]] = [
    {"symbol": "AAPL", "name": "Apple Inc", "sector": "Technology", "industry": "Consumer Electronics"},
    {"symbol": "MSFT", "name": "Microsoft Corporation", "sector": "Technology", "industry": "Software"},
    {"symbol": "JPM", "name": "JPMorgan Chase & Co", "sector": "Finance", "industry": "Banking"},
    {"symbol": "BAC", "name": "Bank of America Corp", "sector": "Finance", "industry": "Banking"},
    {"symbol": "KO", "name": "The Coca-Cola Company", "sector": "Consumer Staples", "industry": "Beverages"},
]


async def seed_sample_data(repository: StockRepository, rng: Optional[random.Random] = None) -> int:
    """
    Inserta (o actualiza) los instrumentos de ejemplo

    Returns:
        Número de instrumentos sembrados
    """
    rng = rng or random.Random()
    today = today_bucket()
    yesterday = today - timedelta(days=1)

    for sample in SAMPLE_STOCKS:
        stock_id = await repository.upsert_stock(
            sample["symbol"],
            sample["name"],
            sector=sample["sector"],
            industry=sample["industry"],
        )

        await repository.insert_pe_ratio_if_absent(stock_id, round(rng.uniform(5, 35), 2), today)

        previous_close = round(rng.uniform(50, 500), 2)
        latest_close = round(previous_close * rng.uniform(0.9, 1.1), 2)
        for day, close in ((yesterday, previous_close), (today, latest_close)):
            await repository.upsert_price(PriceBar(
                stock_id=stock_id,
                date=day,
                open=close,
                high=round(close * 1.01, 2),
                low=round(close * 0.99, 2),
                close=close,
                volume=rng.randint(1_000_000, 50_000_000),
            ))

        logger.info("sample_stock_seeded", symbol=sample["symbol"])

    return len(SAMPLE_STOCKS)
