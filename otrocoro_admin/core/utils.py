"""
Core Utilities

Shared helpers used across the application.
"""
import re
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def generate_slug(name: str) -> str:
    """Generate URL-friendly slug from name with a random suffix."""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    slug = slug.strip("-") or "bundle"

    # Add random suffix for uniqueness
    suffix = uuid4().hex[:6]

    return f"{slug}-{suffix}"
