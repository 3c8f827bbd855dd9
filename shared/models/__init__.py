"""
Pydantic models for data validation and serialization
"""

from .finnhub import *
from .stocks import *

__all__ = [
    # Finnhub models
    "SymbolRecord",
    "CandleSeries",
    "BasicFinancials",
    "Quote",
    "CompanyProfile",
    # Stock models
    "SortOrder",
    "PriceBar",
    "StockQuery",
    "StockSummary",
    "StockWithPERatio",
    "StockWithPriceChange",
    "PaginationInfo",
    "LowPEResponse",
    "LargestDeclinesResponse",
]
