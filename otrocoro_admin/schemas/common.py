"""
Shared schema types.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, PlainSerializer

from otrocoro_admin.core.utils import as_utc

# Documents carry money as JSON numbers; Python code works in Decimal
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# Fixed-width UTC ISO strings so stored timestamps sort chronologically as text
Timestamp = Annotated[
    datetime,
    PlainSerializer(
        lambda value: as_utc(value).astimezone(timezone.utc).isoformat(timespec="microseconds"),
        return_type=str,
        when_used="json",
    ),
]


class Pagination(BaseModel):
    """Pagination block of a paginated response."""
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool
