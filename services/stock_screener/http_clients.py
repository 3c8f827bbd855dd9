"""
HTTP Clients - Cliente HTTP para la API de Finnhub

Endpoints usados:
- /stock/symbol     lista de símbolos por exchange (ETL etapa A)
- /stock/metric     fundamentales: P/E, market cap (ETL etapa B)
- /stock/profile2   perfil de compañía (enriquecimiento opcional)
- /stock/candle     velas OHLCV diarias (ETL etapa C)
- /quote            cotización actual

Política de errores: cualquier fallo de transporte o payload vacío en las
llamadas por instrumento se convierte en None. Solo get_symbols propaga el
error, porque sin la lista completa la etapa no tiene sentido.
"""

import httpx
from typing import Optional, Dict, Any, List

from shared.config.settings import settings
from shared.models.finnhub import (
    SymbolRecord,
    CandleSeries,
    BasicFinancials,
    Quote,
    CompanyProfile,
)
from shared.utils.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Configuración de límites
# ============================================================================

EXTERNAL_API_LIMITS = httpx.Limits(
    max_keepalive_connections=20,
    max_connections=50,
    keepalive_expiry=60.0
)


# ============================================================================
# Cliente para Finnhub API
# ============================================================================

class FinnhubClient:
    """
    Cliente HTTP asíncrono para Finnhub

    El token se envía como query param `token` en cada request.
    """

    BASE_URL = "https://finnhub.io/api/v1"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url or self.BASE_URL
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            limits=EXTERNAL_API_LIMITS,
            transport=transport,
        )
        logger.info("finnhub_client_initialized", base_url=self.base_url)

    async def _request(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        """GET que propaga errores de transporte y HTTP"""
        params = dict(params or {})
        params["token"] = self.api_key

        response = await self._client.get(endpoint, params=params)
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()

    async def get(self, endpoint: str, params: Optional[Dict] = None) -> Optional[Any]:
        """GET genérico: None ante cualquier error"""
        try:
            return await self._request(endpoint, params)
        except Exception as e:
            logger.warning(
                "finnhub_request_error",
                endpoint=endpoint,
                symbol=(params or {}).get("symbol"),
                error=str(e),
                error_type=type(e).__name__
            )
            return None

    # =============================================
    # SYMBOLS
    # =============================================

    async def get_symbols(self, exchange: str = "US") -> List[SymbolRecord]:
        """
        Lista completa de símbolos del exchange

        Propaga errores de red/HTTP. Body vacío -> lista vacía.
        Entradas inválidas se descartan con un warning.
        """
        try:
            data = await self._request("/stock/symbol", {"exchange": exchange})
        except Exception as e:
            logger.error("finnhub_symbols_error", exchange=exchange, error=str(e))
            raise

        if not data:
            return []

        records: List[SymbolRecord] = []
        for item in data:
            try:
                records.append(SymbolRecord.model_validate(item))
            except Exception as e:
                logger.warning("invalid_symbol_record", record=item, error=str(e))
        return records

    # =============================================
    # PER-INSTRUMENT ENDPOINTS
    # =============================================

    async def get_candles(
        self,
        symbol: str,
        resolution: str = "D",
        from_epoch: int = 0,
        to_epoch: int = 0,
    ) -> Optional[CandleSeries]:
        """Velas OHLCV; None si no hay array de cierres utilizable"""
        data = await self.get(
            "/stock/candle",
            {"symbol": symbol, "resolution": resolution, "from": from_epoch, "to": to_epoch}
        )
        if not isinstance(data, dict) or not isinstance(data.get("c"), list):
            return None

        try:
            return CandleSeries.model_validate(data)
        except Exception as e:
            logger.warning("invalid_candle_payload", symbol=symbol, error=str(e))
            return None

    async def get_basic_financials(self, symbol: str, metric: str = "all") -> Optional[BasicFinancials]:
        """Métricas fundamentales; None si error o body vacío"""
        data = await self.get("/stock/metric", {"symbol": symbol, "metric": metric})
        if not data or not isinstance(data, dict):
            return None

        try:
            return BasicFinancials.model_validate(data)
        except Exception as e:
            logger.warning("invalid_financials_payload", symbol=symbol, error=str(e))
            return None

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        """Cotización actual; None si no hay precio"""
        data = await self.get("/quote", {"symbol": symbol})
        if not isinstance(data, dict) or not data.get("c"):
            return None

        try:
            return Quote.model_validate(data)
        except Exception as e:
            logger.warning("invalid_quote_payload", symbol=symbol, error=str(e))
            return None

    async def get_company_profile(self, symbol: str) -> Optional[CompanyProfile]:
        """Perfil de compañía; None si no viene el ticker"""
        data = await self.get("/stock/profile2", {"symbol": symbol})
        if not isinstance(data, dict) or not data.get("ticker"):
            return None

        try:
            return CompanyProfile.model_validate(data)
        except Exception as e:
            logger.warning("invalid_profile_payload", symbol=symbol, error=str(e))
            return None

    async def close(self):
        await self._client.aclose()
        logger.info("finnhub_client_closed")


# ============================================================================
# Manager de Clientes
# ============================================================================

class HTTPClientManager:
    """
    Gestor centralizado de clientes HTTP
    """

    def __init__(self):
        self.finnhub: Optional[FinnhubClient] = None
        self._initialized = False

    async def initialize(self, finnhub_api_key: Optional[str] = None):
        """Inicializa todos los clientes"""
        if self._initialized:
            logger.warning("http_clients_already_initialized")
            return

        api_key = finnhub_api_key if finnhub_api_key is not None else settings.FINNHUB_API_KEY
        if not api_key:
            logger.warning("finnhub_api_key_missing")

        self.finnhub = FinnhubClient(
            api_key,
            base_url=settings.finnhub_base_url,
            timeout=settings.finnhub_timeout,
        )

        self._initialized = True
        logger.info("http_client_manager_initialized")

    async def close(self):
        """Cierra todos los clientes"""
        if self.finnhub:
            await self.finnhub.close()
            self.finnhub = None

        self._initialized = False
        logger.info("http_client_manager_closed")


# Instancia global
http_clients = HTTPClientManager()
