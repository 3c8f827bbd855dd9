"""
Helpers de paginación
"""

import math
from typing import List, Sequence, TypeVar

from shared.models.stocks import PaginationInfo

T = TypeVar("T")

DEFAULT_LIMIT = 25
MAX_LIMIT = 100


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit)"""
    return math.ceil(total / limit) if limit > 0 else 0


def build_pagination(total: int, page: int, limit: int) -> PaginationInfo:
    return PaginationInfo(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages(total, limit),
    )


def slice_page(items: Sequence[T], offset: int, limit: int) -> List[T]:
    """Ventana [offset, offset + limit) de una secuencia ya ordenada"""
    return list(items[offset:offset + limit])
