"""
Pydantic models for stocks, ranking rows and paginated responses

JSON field names are camelCase (peRatio, totalPages...) to match the web
client; Python attributes stay snake_case.
"""

from datetime import date as date_type
from typing import Optional, List, Literal
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel


SortOrder = Literal["asc", "desc"]


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================
# PERSISTED RECORDS
# =============================================

class PriceBar(BaseModel):
    """Daily OHLCV bar for one instrument"""

    stock_id: str
    date: date_type = Field(..., description="Daily bucket (UTC)")
    open: float
    high: float
    low: float
    close: float
    volume: int


# =============================================
# QUERY
# =============================================

class StockQuery(BaseModel):
    """Validated ranking query (page/limit already clamped)"""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=25, ge=1, le=100)
    sort_by: str
    sort_order: SortOrder = "asc"
    sector: Optional[str] = None
    industry: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# =============================================
# RANKING ROWS
# =============================================

class StockSummary(CamelModel):
    """Identity fields shared by both rankings"""

    id: str
    symbol: str
    name: str
    sector: Optional[str] = None
    industry: Optional[str] = None


class StockWithPERatio(StockSummary):
    pe_ratio: float


class StockWithPriceChange(StockSummary):
    price_change: float = Field(..., description="Percent change between the two latest closes")


# =============================================
# PAGINATION
# =============================================

class PaginationInfo(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class LowPEResponse(CamelModel):
    data: List[StockWithPERatio]
    pagination: PaginationInfo


class LargestDeclinesResponse(CamelModel):
    data: List[StockWithPriceChange]
    pagination: PaginationInfo
