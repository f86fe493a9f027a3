from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bookstore.api.errors import register_error_handlers
from bookstore.api.routes import router
from bookstore.config import Settings
from bookstore.domain.account import Account
from bookstore.domain.book import Book
from bookstore.domain.contracts import CreateBookInput, NewAccount
from bookstore.domain.service import AccountService, BookService
from bookstore.errors import DuplicateEmail, StorageFailure
from bookstore.security.guard import AccessGuard
from bookstore.security.passwords import PasswordHasher
from bookstore.security.rate_limiter import SlidingWindowRateLimiter
from bookstore.security.tokens import TokenService

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


class FakeAccountDirectory:
    """In-memory account directory mimicking the unique email index."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.create_calls = 0
        self.fail_with: Exception | None = None

    def create_account(self, payload: NewAccount) -> Account:
        self.create_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        key = payload.email.lower()
        if key in self.accounts:
            raise DuplicateEmail(payload.email)
        account = Account(
            account_id=str(uuid.uuid4()),
            display_name=payload.display_name,
            email=payload.email,
            password_hash=payload.password_hash,
            created_at=NOW,
        )
        self.accounts[key] = account
        return account

    def find_account_by_email(self, email: str) -> Account | None:
        if self.fail_with is not None:
            raise self.fail_with
        return self.accounts.get(email.lower())


class FakeBookStore:
    def __init__(self) -> None:
        self.books: list[Book] = []

    def create_book(
        self, payload: CreateBookInput, *, created_by: str, created_at: datetime
    ) -> Book:
        book = Book(
            book_id=str(uuid.uuid4()),
            title=payload.title,
            author=payload.author,
            genre=payload.genre,
            description=payload.description,
            created_by=created_by,
            created_at=created_at,
            updated_at=created_at,
        )
        self.books.append(book)
        return book


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(scope="session")
def settings() -> Settings:
    return Settings(
        jwt_secret="test-secret-0123456789abcdef0123456789abcdef",
        jwt_issuer="bookstore.test",
        jwt_ttl_seconds=86400,
        password_time_cost=1,
        password_memory_cost=8,
        password_parallelism=1,
        rate_limit_requests=5,
        rate_limit_window_seconds=60,
    )


@pytest.fixture(scope="session")
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher.from_settings(settings)


@pytest.fixture
def tokens(settings: Settings) -> TokenService:
    return TokenService.from_settings(settings)


@pytest.fixture
def directory() -> FakeAccountDirectory:
    return FakeAccountDirectory()


@pytest.fixture
def book_store() -> FakeBookStore:
    return FakeBookStore()


@pytest.fixture
def account_service(directory, hasher, tokens) -> AccountService:
    return AccountService(directory, hasher, tokens)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api_client(settings, account_service, book_store, tokens, clock):
    """Provide a FastAPI test client with isolated in-memory state."""
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(router)
    app.state.account_service = account_service
    app.state.book_service = BookService(book_store)
    app.state.access_guard = AccessGuard(tokens)
    app.state.rate_limiter = SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.state.clock = clock

    with TestClient(app) as client:
        yield client


@pytest.fixture
def storage_down(directory: FakeAccountDirectory) -> FakeAccountDirectory:
    directory.fail_with = StorageFailure()
    return directory
