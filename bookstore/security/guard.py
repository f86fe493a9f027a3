"""Bearer-token extraction and verification for protected operations."""

from __future__ import annotations

import logging
from datetime import datetime

from ..domain.account import Principal
from ..errors import TokenRejected, Unauthenticated
from ..metrics import record_auth_event
from .tokens import TokenService

logger = logging.getLogger(__name__)

BEARER_SCHEME = "Bearer"


class AccessGuard:
    """Turns an ``Authorization`` header value into a request-scoped principal."""

    def __init__(self, tokens: TokenService, scheme: str = BEARER_SCHEME) -> None:
        self._tokens = tokens
        self._scheme = scheme

    def authenticate(self, header_value: str | None, now: datetime) -> Principal:
        """Return the principal for ``header_value`` or raise ``Unauthenticated``.

        The header must be exactly ``"<scheme> <token>"``. Token rejection
        kinds are logged for diagnostics and collapsed into a single outward
        error.
        """
        if not header_value:
            record_auth_event("guard", "missing_header")
            raise Unauthenticated("authorization header required")

        parts = header_value.split(" ")
        if len(parts) != 2 or parts[0] != self._scheme or not parts[1]:
            record_auth_event("guard", "bad_scheme")
            raise Unauthenticated("invalid authorization header format")

        try:
            account_id = self._tokens.verify(parts[1], now)
        except TokenRejected as exc:
            logger.info("bearer token rejected: %s", exc.kind.value)
            record_auth_event("guard", exc.kind.value)
            raise Unauthenticated() from exc

        record_auth_event("guard", "accepted")
        return Principal(account_id=account_id)
