"""
Cálculos derivados de los rankings

Funciones puras sobre filas ya cargadas (instrumento + hijos). No tocan la
base de datos, así se pueden testear sin persistencia.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from shared.models.stocks import StockWithPERatio, StockWithPriceChange


def compute_price_change(latest_close: float, previous_close: float) -> Optional[float]:
    """
    Cambio porcentual entre los dos últimos cierres

    Returns:
        (latest - previous) / previous * 100, o None si previous es 0
    """
    if not previous_close:
        return None
    return (latest_close - previous_close) / previous_close * 100


def price_change_from_closes(closes: Optional[Sequence[float]]) -> Optional[float]:
    """closes[0] = último cierre, closes[1] = anterior; None con menos de dos"""
    if not closes or len(closes) < 2:
        return None
    return compute_price_change(closes[0], closes[1])


def build_decline_rows(rows: Iterable[Dict[str, Any]]) -> List[StockWithPriceChange]:
    """Filas con closes -> StockWithPriceChange, excluyendo las que no tienen dos barras"""
    result = []
    for row in rows:
        change = price_change_from_closes(row.get("closes"))
        if change is None:
            continue
        result.append(StockWithPriceChange(
            id=str(row["id"]),
            symbol=row["symbol"],
            name=row["name"],
            sector=row.get("sector"),
            industry=row.get("industry"),
            price_change=change,
        ))
    return result


def build_pe_rows(rows: Iterable[Dict[str, Any]]) -> List[StockWithPERatio]:
    """Filas con pe_ratio -> StockWithPERatio, excluyendo instrumentos sin observación"""
    return [
        StockWithPERatio(
            id=str(row["id"]),
            symbol=row["symbol"],
            name=row["name"],
            sector=row.get("sector"),
            industry=row.get("industry"),
            pe_ratio=row["pe_ratio"],
        )
        for row in rows
        if row.get("pe_ratio") is not None
    ]


def sort_declines(
    rows: List[StockWithPriceChange],
    sort_by: str,
    sort_order: str,
) -> List[StockWithPriceChange]:
    """
    Ordena por priceChange, symbol o name

    Texto sin distinguir mayúsculas; empate resuelto por symbol ascendente.
    """
    reverse = sort_order == "desc"
    # Primero el desempate, luego la clave principal (sort estable)
    ordered = sorted(rows, key=lambda r: r.symbol)

    if sort_by == "symbol":
        return sorted(ordered, key=lambda r: r.symbol.casefold(), reverse=reverse)
    if sort_by == "name":
        return sorted(ordered, key=lambda r: r.name.casefold(), reverse=reverse)
    return sorted(ordered, key=lambda r: r.price_change, reverse=reverse)
