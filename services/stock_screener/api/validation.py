"""
Validación de query params de los endpoints de ranking

Se ejecuta antes de cualquier acceso a la base de datos.
"""

import re
from typing import Any, Dict, Literal, Optional

from shared.models.stocks import StockQuery

from ..errors import ValidationError
from ..pagination import DEFAULT_LIMIT, MAX_LIMIT

Endpoint = Literal["low-pe", "largest-declines"]

VALID_SORT_FIELDS: Dict[str, tuple] = {
    "low-pe": ("peRatio", "symbol", "name"),
    "largest-declines": ("priceChange", "symbol", "name"),
}

DEFAULT_SORT_FIELD = {
    "low-pe": "peRatio",
    "largest-declines": "priceChange",
}

SORT_ORDERS = ("asc", "desc")

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _parse_int(value: Any, default: int) -> int:
    """Entero inicial del valor ("12abc" -> 12); vacío -> default"""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    if not match:
        raise ValidationError("page and limit must be valid integers")
    return int(match.group(1))


def validate_stock_query(
    endpoint: Endpoint,
    page: Optional[Any] = None,
    limit: Optional[Any] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    sector: Optional[str] = None,
    industry: Optional[str] = None,
) -> StockQuery:
    """
    Valida y normaliza los parámetros de un ranking

    - page/limit no numéricos -> ValidationError; fuera de rango se ajustan
      (page >= 1, 1 <= limit <= 100)
    - sortBy debe pertenecer al vocabulario del endpoint
    - sortOrder asc|desc sin distinguir mayúsculas
    - sector/industry vacíos no filtran
    """
    if endpoint not in VALID_SORT_FIELDS:
        raise ValidationError(f"Unknown endpoint: {endpoint}")

    page_value = max(1, _parse_int(page, 1))
    limit_value = max(1, min(MAX_LIMIT, _parse_int(limit, DEFAULT_LIMIT)))

    sort_field = sort_by or DEFAULT_SORT_FIELD[endpoint]
    allowed = VALID_SORT_FIELDS[endpoint]
    if sort_field not in allowed:
        raise ValidationError(f"Invalid sortBy. Allowed values: {', '.join(allowed)}")

    order = (sort_order or "asc").lower()
    if order not in SORT_ORDERS:
        raise ValidationError("sortOrder must be asc or desc")

    return StockQuery(
        page=page_value,
        limit=limit_value,
        sort_by=sort_field,
        sort_order=order,
        sector=sector or None,
        industry=industry or None,
    )
