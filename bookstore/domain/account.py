from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class Account:
    """Identity record owned by the account directory."""

    account_id: str
    display_name: str
    email: str
    password_hash: str = field(repr=False)
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity for the duration of a single request."""

    account_id: str
