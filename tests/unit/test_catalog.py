"""
Unit Tests - Catalog Queries
"""
import pytest

from pcstore.services.catalog import PageRequest, Pagination, escape_like, slugify
from pcstore.services.errors import InvalidLimit, ValidationError


class TestSlugify:
    """Tests for slugify"""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Graphics Cards!!", "graphics-cards"),
            ("CPU & Cooling", "cpu-cooling"),
            ("  Power Supplies  ", "power-supplies"),
            ("RAM", "ram"),
            ("---", ""),
        ],
    )
    def test_slug_values(self, name, expected):
        """Test slug derivation"""
        assert slugify(name) == expected

    def test_slugify_is_idempotent(self):
        """Test slugify(slugify(x)) == slugify(x)"""
        for name in ("Graphics Cards!!", "Mini-ITX  Cases", "SSD/NVMe"):
            assert slugify(slugify(name)) == slugify(name)


class TestEscapeLike:
    """Tests for LIKE wildcard escaping"""

    def test_wildcards_are_escaped(self):
        """Test % and _ match literally"""
        assert escape_like("100%_off") == "100\\%\\_off"

    def test_plain_text_unchanged(self):
        """Test ordinary terms pass through"""
        assert escape_like("rtx") == "rtx"


class TestPageRequest:
    """Tests for PageRequest.build"""

    def test_defaults(self):
        """Test page 1 and default limit"""
        request = PageRequest.build(default_limit=10)

        assert request.page == 1
        assert request.limit == 10
        assert request.search == ""
        assert request.skip == 0

    def test_skip(self):
        """Test skip is (page - 1) * limit"""
        assert PageRequest.build(page=3, limit=10).skip == 20

    def test_zero_limit_rejected(self):
        """Test limit < 1 raises InvalidLimit"""
        with pytest.raises(InvalidLimit):
            PageRequest.build(limit=0)

    def test_negative_page_rejected(self):
        """Test page < 1 raises ValidationError"""
        with pytest.raises(ValidationError):
            PageRequest.build(page=0)

    def test_limit_capped(self):
        """Test limit is capped at the maximum"""
        assert PageRequest.build(limit=1000, max_limit=100).limit == 100

    def test_search_is_trimmed(self):
        """Test surrounding whitespace is removed from search"""
        assert PageRequest.build(search="  rtx ").search == "rtx"


class TestPagination:
    """Tests for Pagination.compute"""

    def test_middle_page(self):
        """Test flags on a middle page"""
        pagination = Pagination.compute(PageRequest(page=2, limit=10), 25)

        assert pagination.total_pages == 3
        assert pagination.has_next_page is True
        assert pagination.has_prev_page is True

    def test_last_page(self):
        """Test flags on the last page"""
        pagination = Pagination.compute(PageRequest(page=2, limit=10), 15)

        assert pagination.total_pages == 2
        assert pagination.has_next_page is False
        assert pagination.has_prev_page is True

    def test_empty_collection(self):
        """Test zero total gives zero pages"""
        pagination = Pagination.compute(PageRequest(page=1, limit=10), 0)

        assert pagination.total_pages == 0
        assert pagination.has_next_page is False
        assert pagination.has_prev_page is False

    def test_to_dict_uses_count_key(self):
        """Test the envelope carries the entity-specific total"""
        envelope = Pagination.compute(PageRequest(page=1, limit=5), 12).to_dict("totalProducts")

        assert envelope == {
            "currentPage": 1,
            "totalPages": 3,
            "totalProducts": 12,
            "hasNextPage": True,
            "hasPrevPage": False,
            "limit": 5,
        }
