"""
Pagination helpers shared by list endpoints.
"""
from math import ceil
from typing import List, Sequence, Tuple, TypeVar

from otrocoro_admin.core.config import settings
from otrocoro_admin.schemas.common import Pagination

T = TypeVar("T")


class PaginationHelper:
    """Page/limit/offset arithmetic."""

    @staticmethod
    def create(page: int, limit: int, total: int) -> Pagination:
        """Build the pagination block for a result set of `total` items."""
        total_pages = ceil(total / limit) if limit > 0 else 0
        return Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page * limit < total,
            has_prev=page > 1,
        )

    @staticmethod
    def get_offset(page: int, limit: int) -> int:
        return (page - 1) * limit

    @staticmethod
    def validate_params(page: int = None, limit: int = None) -> Tuple[int, int]:
        """Clamp page to >= 1 and limit to [1, PAGINATION_MAX_LIMIT]."""
        validated_page = max(1, page or 1)
        validated_limit = min(
            settings.PAGINATION_MAX_LIMIT,
            max(1, limit or settings.PAGINATION_DEFAULT_LIMIT),
        )
        return validated_page, validated_limit

    @classmethod
    def paginate(cls, data: Sequence[T], page: int, limit: int) -> Tuple[List[T], Pagination]:
        """Slice an in-memory result set."""
        page, limit = cls.validate_params(page, limit)
        start = cls.get_offset(page, limit)
        return list(data[start:start + limit]), cls.create(page, limit, len(data))
