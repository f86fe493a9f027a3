from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Book:
    """Catalog entry attributed to the account that created it."""

    book_id: str
    title: str
    author: str
    genre: str
    created_by: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None
