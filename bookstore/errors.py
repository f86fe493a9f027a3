"""Error taxonomy shared by the domain, security and API layers.

Every outward-facing failure carries a stable machine-readable ``kind`` and
the HTTP status the transport layer should use. Messages are safe to return
to callers; driver errors and secrets are never attached to them.
"""

from __future__ import annotations

from enum import Enum


class BookstoreError(Exception):
    """Base class for failures translated into a stable client-visible kind."""

    kind: str = "internal_error"
    status_code: int = 500
    default_message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(BookstoreError):
    kind = "validation_failed"
    status_code = 400
    default_message = "invalid request"


class InvalidCredentials(BookstoreError):
    kind = "invalid_credentials"
    status_code = 401
    default_message = "invalid email or password"


class Unauthenticated(BookstoreError):
    kind = "unauthenticated"
    status_code = 401
    default_message = "invalid or missing bearer token"


class Conflict(BookstoreError):
    kind = "conflict"
    status_code = 409
    default_message = "email already registered"


class StorageFailure(BookstoreError):
    kind = "storage_failure"
    status_code = 500
    default_message = "storage unavailable"


class RateLimited(BookstoreError):
    kind = "rate_limited"
    status_code = 429
    default_message = "too many attempts, retry later"


class ServiceUnavailable(BookstoreError):
    """Raised when a dependency needed to admit the request is down."""

    kind = "service_unavailable"
    status_code = 503
    default_message = "service temporarily unavailable"


class HashingFailure(BookstoreError):
    """Raised when the password hasher cannot produce a digest."""

    kind = "internal_error"
    status_code = 500
    default_message = "internal error"


class DuplicateEmail(Exception):
    """Raised by the account directory when the email is already registered."""


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is missing or unusable."""


class TokenRejection(str, Enum):
    malformed = "malformed"
    bad_signature = "bad_signature"
    expired = "expired"


class TokenRejected(Exception):
    """Internal token verification failure; never shown to clients as-is."""

    def __init__(self, kind: TokenRejection) -> None:
        self.kind = kind
        super().__init__(kind.value)
