"""Postgres repositories for account and book records."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account
from .domain.book import Book
from .domain.contracts import CreateBookInput, NewAccount
from .errors import DuplicateEmail, StorageFailure

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        account_id TEXT PRIMARY KEY,
        display_name TEXT NOT NULL,
        email TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS accounts_email_key ON accounts (lower(email))",
    """
    CREATE TABLE IF NOT EXISTS books (
        book_id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        author TEXT NOT NULL,
        genre TEXT NOT NULL,
        description TEXT,
        created_by TEXT NOT NULL REFERENCES accounts (account_id),
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
)

_ACCOUNT_COLUMNS = "account_id, display_name, email, password_hash, created_at"


class AccountDirectory(Protocol):
    """Create/fetch interface the auth workflow depends on."""

    def create_account(self, payload: NewAccount) -> Account: ...

    def find_account_by_email(self, email: str) -> Account | None: ...


class BookStore(Protocol):
    def create_book(
        self, payload: CreateBookInput, *, created_by: str, created_at: datetime
    ) -> Book: ...


def ensure_schema(pool: ConnectionPool) -> None:
    """Create tables and the case-insensitive unique email index.

    Failures propagate so the service refuses to start without the uniqueness
    guarantee registration relies on.
    """
    with pool.connection() as conn:
        with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
        conn.commit()
    logger.info("database schema verified")


class AccountRepository:
    """Postgres-backed account directory keyed by email."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the shared connection pool used for all database interactions."""
        self._pool = pool

    def create_account(self, payload: NewAccount) -> Account:
        """Insert a new account and return it with its assigned identifier.

        Raises
        ------
        DuplicateEmail
            When the unique email index rejects the insert.
        StorageFailure
            For any other database error.
        """
        account_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO accounts ({_ACCOUNT_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING {_ACCOUNT_COLUMNS}
                        """,
                        (
                            account_id,
                            payload.display_name,
                            payload.email,
                            payload.password_hash,
                            now,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except pg_errors.UniqueViolation as exc:
            raise DuplicateEmail(payload.email) from exc
        except psycopg.Error as exc:
            logger.error("account insert failed: %s", type(exc).__name__)
            raise StorageFailure() from exc
        return self._map_account(row)

    def find_account_by_email(self, email: str) -> Account | None:
        """Return the account registered under ``email`` or ``None``."""
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        SELECT {_ACCOUNT_COLUMNS}
                        FROM accounts
                        WHERE lower(email) = lower(%s)
                        LIMIT 2
                        """,
                        (email,),
                    )
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            logger.error("account lookup failed: %s", type(exc).__name__)
            raise StorageFailure() from exc
        if not rows:
            return None
        if len(rows) > 1:
            logger.error("account lookup returned multiple rows for one email")
            raise StorageFailure()
        return self._map_account(rows[0])

    def _map_account(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=row[0],
            display_name=row[1],
            email=row[2],
            password_hash=row[3],
            created_at=row[4],
        )


class BookRepository:
    """Postgres-backed book persistence."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create_book(
        self, payload: CreateBookInput, *, created_by: str, created_at: datetime
    ) -> Book:
        """Insert a book attributed to ``created_by`` and stamped with ``created_at``."""
        book_id = str(uuid.uuid4())
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        """
                        INSERT INTO books (
                            book_id, title, author, genre, description,
                            created_by, created_at, updated_at
                        )
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING book_id, title, author, genre, description,
                                  created_by, created_at, updated_at
                        """,
                        (
                            book_id,
                            payload.title,
                            payload.author,
                            payload.genre,
                            payload.description,
                            created_by,
                            created_at,
                            created_at,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except psycopg.Error as exc:
            logger.error("book insert failed: %s", type(exc).__name__)
            raise StorageFailure() from exc
        return Book(
            book_id=row[0],
            title=row[1],
            author=row[2],
            genre=row[3],
            description=row[4],
            created_by=row[5],
            created_at=row[6],
            updated_at=row[7],
        )
