"""
Unit tests for PaginationHelper.
"""
from otrocoro_admin.core.pagination import PaginationHelper


class TestPaginationHelper:
    def test_create(self):
        pagination = PaginationHelper.create(page=2, limit=10, total=25)
        assert pagination.total_pages == 3
        assert pagination.has_next is True
        assert pagination.has_prev is True

    def test_last_page(self):
        pagination = PaginationHelper.create(page=3, limit=10, total=25)
        assert pagination.has_next is False

    def test_empty_result(self):
        pagination = PaginationHelper.create(page=1, limit=20, total=0)
        assert pagination.total_pages == 0
        assert pagination.has_next is False
        assert pagination.has_prev is False

    def test_offset(self):
        assert PaginationHelper.get_offset(1, 20) == 0
        assert PaginationHelper.get_offset(3, 20) == 40

    def test_validate_params_clamps(self):
        assert PaginationHelper.validate_params(0, 0) == (1, 20)
        assert PaginationHelper.validate_params(-3, 500) == (1, 100)
        assert PaginationHelper.validate_params(None, None) == (1, 20)
        assert PaginationHelper.validate_params(4, 50) == (4, 50)

    def test_paginate(self):
        data, pagination = PaginationHelper.paginate(list(range(45)), page=3, limit=20)
        assert data == list(range(40, 45))
        assert pagination.total == 45
        assert pagination.has_next is False
