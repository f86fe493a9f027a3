from __future__ import annotations

from datetime import timedelta

import pytest

from bookstore.domain.account import Principal
from bookstore.domain.contracts import CreateBookInput, LoginInput, RegisterInput
from bookstore.domain.service import BookService
from bookstore.errors import (
    Conflict,
    InvalidCredentials,
    StorageFailure,
    ValidationFailed,
)

from .conftest import NOW


def _register(service, email="ann@x.com", password="s3cret!", name="Ann"):
    return service.register(RegisterInput(display_name=name, email=email, password=password))


def test_register_stores_hash_not_plaintext(account_service, directory, hasher):
    receipt = _register(account_service)

    assert directory.create_calls == 1
    stored = directory.accounts["ann@x.com"]
    assert receipt.account_id == stored.account_id
    assert receipt.email == "ann@x.com"
    assert stored.password_hash != "s3cret!"
    assert hasher.verify("s3cret!", stored.password_hash)
    assert "s3cret!" not in repr(stored)
    assert stored.password_hash not in repr(stored)


@pytest.mark.parametrize(
    "name, email, password",
    [("", "ann@x.com", "pw"), ("Ann", "", "pw"), ("Ann", "ann@x.com", ""), ("  ", "ann@x.com", "pw")],
)
def test_register_validation_does_not_touch_directory(account_service, directory, name, email, password):
    with pytest.raises(ValidationFailed):
        _register(account_service, email=email, password=password, name=name)
    assert directory.create_calls == 0


def test_duplicate_registration_is_a_conflict(account_service, directory):
    _register(account_service)

    with pytest.raises(Conflict):
        _register(account_service, email="ANN@x.com", password="other")
    assert len(directory.accounts) == 1


def test_register_surfaces_storage_failure(account_service, storage_down):
    with pytest.raises(StorageFailure):
        _register(account_service)


def test_login_returns_token_for_registered_account(account_service, tokens):
    receipt = _register(account_service)

    result = account_service.login(LoginInput(email="ann@x.com", password="s3cret!"), NOW)

    assert result.account_id == receipt.account_id
    assert result.display_name == "Ann"
    assert result.email == "ann@x.com"
    assert result.expires_at == NOW + timedelta(seconds=tokens.ttl_seconds)
    assert tokens.verify(result.token, NOW) == receipt.account_id


def test_login_never_mutates_the_directory(account_service, directory):
    _register(account_service)
    before = dict(directory.accounts)
    stored_hash = directory.accounts["ann@x.com"].password_hash

    account_service.login(LoginInput(email="ann@x.com", password="s3cret!"), NOW)
    with pytest.raises(InvalidCredentials):
        account_service.login(LoginInput(email="ann@x.com", password="wrong"), NOW)
    with pytest.raises(InvalidCredentials):
        account_service.login(LoginInput(email="ghost@x.com", password="s3cret!"), NOW)

    assert directory.create_calls == 1
    assert directory.accounts == before
    assert directory.accounts["ann@x.com"].password_hash == stored_hash


def test_unknown_email_and_wrong_password_are_indistinguishable(account_service):
    _register(account_service)

    with pytest.raises(InvalidCredentials) as wrong_password:
        account_service.login(LoginInput(email="ann@x.com", password="wrong"), NOW)
    with pytest.raises(InvalidCredentials) as unknown_email:
        account_service.login(LoginInput(email="nobody@x.com", password="s3cret!"), NOW)

    assert type(wrong_password.value) is type(unknown_email.value)
    assert wrong_password.value.message == unknown_email.value.message


def test_login_spends_a_decoy_verification_for_unknown_email(account_service, hasher, monkeypatch):
    calls = []
    monkeypatch.setattr(hasher, "verify_decoy", lambda plaintext: calls.append(plaintext) or False)

    with pytest.raises(InvalidCredentials):
        account_service.login(LoginInput(email="nobody@x.com", password="guess"), NOW)
    assert calls == ["guess"]


def test_login_rejects_empty_fields(account_service):
    with pytest.raises(ValidationFailed):
        account_service.login(LoginInput(email="ann@x.com", password=""), NOW)


def test_login_surfaces_storage_failure(account_service, storage_down):
    with pytest.raises(StorageFailure):
        account_service.login(LoginInput(email="ann@x.com", password="s3cret!"), NOW)


def test_create_book_is_attributed_to_principal(book_store):
    service = BookService(book_store)

    book = service.create_book(
        Principal(account_id="account-1"),
        CreateBookInput(title="Dune", author="Herbert", genre="SciFi"),
        NOW,
    )

    assert book.created_by == "account-1"
    assert book.created_at == book.updated_at == NOW
    assert book_store.books == [book]


def test_create_book_requires_title_author_genre(book_store):
    service = BookService(book_store)

    with pytest.raises(ValidationFailed):
        service.create_book(
            Principal(account_id="account-1"),
            CreateBookInput(title="", author="Herbert", genre="SciFi"),
            NOW,
        )
    assert book_store.books == []
