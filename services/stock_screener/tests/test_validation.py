"""
Tests for ranking query validation.
"""

import pytest

from services.stock_screener.api.validation import validate_stock_query
from services.stock_screener.errors import ValidationError


class TestPagination:

    def test_defaults(self):
        query = validate_stock_query("low-pe")
        assert (query.page, query.limit, query.offset) == (1, 25, 0)
        assert query.sort_by == "peRatio"
        assert query.sort_order == "asc"

    def test_leading_integer_parse(self):
        query = validate_stock_query("low-pe", page="3abc", limit="12px")
        assert (query.page, query.limit, query.offset) == (3, 12, 24)

    @pytest.mark.parametrize("page, limit, expected", [
        ("0", "10", (1, 10)),
        ("-4", "10", (1, 10)),
        ("2", "0", (2, 1)),
        ("2", "500", (2, 100)),
    ])
    def test_out_of_range_is_clamped(self, page, limit, expected):
        query = validate_stock_query("largest-declines", page=page, limit=limit)
        assert (query.page, query.limit) == expected

    @pytest.mark.parametrize("page, limit", [("abc", "10"), ("1", "ten")])
    def test_non_numeric_rejected(self, page, limit):
        with pytest.raises(ValidationError) as exc:
            validate_stock_query("low-pe", page=page, limit=limit)
        assert exc.value.message == "page and limit must be valid integers"
        assert exc.value.status_code == 400


class TestSorting:

    def test_endpoint_defaults(self):
        assert validate_stock_query("largest-declines").sort_by == "priceChange"

    def test_sort_field_belongs_to_endpoint(self):
        with pytest.raises(ValidationError) as exc:
            validate_stock_query("low-pe", sort_by="priceChange")
        assert exc.value.message == "Invalid sortBy. Allowed values: peRatio, symbol, name"

        with pytest.raises(ValidationError):
            validate_stock_query("largest-declines", sort_by="peRatio")

    def test_sort_order_case_insensitive(self):
        assert validate_stock_query("low-pe", sort_order="DESC").sort_order == "desc"

    def test_invalid_sort_order(self):
        with pytest.raises(ValidationError) as exc:
            validate_stock_query("low-pe", sort_order="sideways")
        assert exc.value.message == "sortOrder must be asc or desc"


class TestFilters:

    def test_empty_filters_are_ignored(self):
        query = validate_stock_query("low-pe", sector="", industry="")
        assert query.sector is None
        assert query.industry is None

    def test_filters_kept_verbatim(self):
        query = validate_stock_query("low-pe", sector="Technology", industry="Software")
        assert (query.sector, query.industry) == ("Technology", "Software")
