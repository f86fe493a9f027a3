"""Domain-level request and result contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class RegisterInput:
    """Fields required to register an account."""

    display_name: str
    email: str
    password: str = field(repr=False)


@dataclass(slots=True)
class LoginInput:
    """Credentials presented at login."""

    email: str
    password: str = field(repr=False)


@dataclass(slots=True)
class NewAccount:
    """Account row handed to the directory; the password is already hashed."""

    display_name: str
    email: str
    password_hash: str = field(repr=False)


@dataclass(slots=True)
class RegistrationReceipt:
    account_id: str
    email: str


@dataclass(slots=True)
class LoginResult:
    """Token plus the principal summary returned after a successful login."""

    token: str = field(repr=False)
    expires_at: datetime
    expires_in: int
    account_id: str
    display_name: str
    email: str


@dataclass(slots=True)
class CreateBookInput:
    """Validated inputs for a new catalog entry."""

    title: str
    author: str
    genre: str
    description: str | None = None
