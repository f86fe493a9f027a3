"""Account and book workflows orchestrating hashing, persistence and tokens."""

from __future__ import annotations

import logging
from datetime import datetime

from .account import Principal
from .book import Book
from .contracts import (
    CreateBookInput,
    LoginInput,
    LoginResult,
    NewAccount,
    RegisterInput,
    RegistrationReceipt,
)
from ..errors import Conflict, DuplicateEmail, InvalidCredentials, ValidationFailed
from ..metrics import record_auth_event
from ..repository import AccountDirectory, BookStore
from ..security.passwords import PasswordHasher
from ..security.tokens import TokenService

logger = logging.getLogger(__name__)


def _require(**fields: str | None) -> None:
    missing = [name for name, value in fields.items() if not value or not value.strip()]
    if missing:
        raise ValidationFailed(f"missing required fields: {', '.join(missing)}")


class AccountService:
    """Registration and login workflows backed by the account directory."""

    def __init__(
        self,
        directory: AccountDirectory,
        hasher: PasswordHasher,
        tokens: TokenService,
    ) -> None:
        """Store dependencies used to orchestrate hashing, persistence and token issuance."""
        self._directory = directory
        self._hasher = hasher
        self._tokens = tokens

    def register(self, payload: RegisterInput) -> RegistrationReceipt:
        """Hash the password and create the account.

        Raises
        ------
        ValidationFailed
            If any field is empty.
        Conflict
            If the email is already registered.
        StorageFailure
            If the directory is unavailable.
        """
        _require(
            username=payload.display_name,
            email=payload.email,
            password=payload.password,
        )
        hashed = self._hasher.hash(payload.password)
        try:
            account = self._directory.create_account(
                NewAccount(
                    display_name=payload.display_name.strip(),
                    email=payload.email.strip(),
                    password_hash=hashed,
                )
            )
        except DuplicateEmail as exc:
            record_auth_event("register", "conflict")
            raise Conflict() from exc
        record_auth_event("register", "created")
        logger.info("account registered: %s", account.account_id)
        return RegistrationReceipt(account_id=account.account_id, email=account.email)

    def login(self, payload: LoginInput, now: datetime) -> LoginResult:
        """Verify credentials and issue a bearer token valid from ``now``.

        Unknown emails and wrong passwords raise the same ``InvalidCredentials``
        after spending the same hashing cost.
        """
        _require(email=payload.email, password=payload.password)
        account = self._directory.find_account_by_email(payload.email.strip())
        if account is None:
            self._hasher.verify_decoy(payload.password)
            record_auth_event("login", "rejected")
            raise InvalidCredentials()
        if not self._hasher.verify(payload.password, account.password_hash):
            record_auth_event("login", "rejected")
            raise InvalidCredentials()

        issued = self._tokens.issue(account.account_id, now)
        record_auth_event("login", "succeeded")
        logger.info("token issued for account %s", account.account_id)
        return LoginResult(
            token=issued.token,
            expires_at=issued.expires_at,
            expires_in=issued.expires_in,
            account_id=account.account_id,
            display_name=account.display_name,
            email=account.email,
        )


class BookService:
    """Catalog writes attributed to an authenticated principal."""

    def __init__(self, store: BookStore) -> None:
        self._store = store

    def create_book(
        self, principal: Principal, payload: CreateBookInput, now: datetime
    ) -> Book:
        """Persist a book created by ``principal``; ``now`` is the authorization instant."""
        _require(title=payload.title, author=payload.author, genre=payload.genre)
        book = self._store.create_book(
            payload, created_by=principal.account_id, created_at=now
        )
        logger.info("book %s created by %s", book.book_id, principal.account_id)
        return book
