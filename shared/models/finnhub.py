"""
Pydantic models for Finnhub API responses
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ConfigDict


# =============================================
# SYMBOL LIST (/stock/symbol)
# =============================================

class SymbolRecord(BaseModel):
    """Entry of the exchange symbol list"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    symbol: str
    description: str = ""
    display_symbol: str = Field(default="", alias="displaySymbol")
    type: str = ""
    mic: Optional[str] = None
    currency: Optional[str] = None

    @property
    def is_common_stock(self) -> bool:
        """Common equity with a usable display symbol (no ETFs, warrants...)"""
        return self.type == "Common Stock" and bool(self.display_symbol)


# =============================================
# CANDLES (/stock/candle)
# =============================================

class CandleSeries(BaseModel):
    """
    OHLCV series as parallel arrays

    t holds epoch seconds. Arrays are expected to have the same length;
    consumers iterate over `c`. Elements are not coerced here: one null or
    malformed value must only invalidate its own bar.
    """
    model_config = ConfigDict(extra="ignore")

    o: List[Any] = Field(default_factory=list)
    h: List[Any] = Field(default_factory=list)
    l: List[Any] = Field(default_factory=list)
    c: List[Any] = Field(default_factory=list)
    v: List[Any] = Field(default_factory=list)
    t: List[Any] = Field(default_factory=list)
    s: Optional[str] = None

    def __len__(self) -> int:
        return len(self.c)


# =============================================
# BASIC FINANCIALS (/stock/metric)
# =============================================

class BasicFinancials(BaseModel):
    """Fundamentals payload with a flat metric map"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    symbol: Optional[str] = None
    metric: Dict[str, Any] = Field(default_factory=dict)
    metric_type: Optional[str] = Field(default=None, alias="metricType")

    def first_positive(self, *fields: str) -> Optional[float]:
        """
        First truthy numeric value among `fields`, kept only when strictly positive

        Non-numeric values fall through to the next field; a numeric value
        <= 0 does not.
        """
        for field in fields:
            value = self.metric.get(field)
            if value:
                try:
                    number = float(value)
                except (TypeError, ValueError):
                    continue
                return number if number > 0 else None
        return None


# =============================================
# QUOTE (/quote)
# =============================================

class Quote(BaseModel):
    """Real-time quote"""
    model_config = ConfigDict(extra="ignore")

    c: float = Field(..., description="Current price")
    h: Optional[float] = Field(None, description="High of the day")
    l: Optional[float] = Field(None, description="Low of the day")
    o: Optional[float] = Field(None, description="Open of the day")
    pc: Optional[float] = Field(None, description="Previous close")
    t: Optional[int] = Field(None, description="Epoch seconds")


# =============================================
# COMPANY PROFILE (/stock/profile2)
# =============================================

class CompanyProfile(BaseModel):
    """Company profile"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    ticker: str
    name: Optional[str] = None
    country: Optional[str] = None
    currency: Optional[str] = None
    exchange: Optional[str] = None
    ipo: Optional[str] = None
    logo: Optional[str] = None
    weburl: Optional[str] = None
    phone: Optional[str] = None
    finnhub_industry: Optional[str] = Field(default=None, alias="finnhubIndustry")
    market_capitalization: Optional[float] = Field(default=None, alias="marketCapitalization")
    share_outstanding: Optional[float] = Field(default=None, alias="shareOutstanding")
