"""Utilities for issuing and validating application JWTs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import Settings
from ..errors import ConfigurationError, TokenRejected, TokenRejection

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "iss", "iat", "exp"]


class TokenClaims(BaseModel):
    """Typed view of a verified token payload."""

    model_config = ConfigDict(extra="forbid", strict=True)

    sub: str = Field(min_length=1)
    iss: str
    iat: int
    exp: int


@dataclass(frozen=True, slots=True)
class IssuedToken:
    token: str = field(repr=False)
    expires_at: datetime
    expires_in: int


class TokenService:
    """Issues and verifies HS256 bearer tokens signed with the server secret."""

    def __init__(self, *, secret: str, issuer: str, ttl_seconds: int) -> None:
        """Store signing parameters.

        Raises
        ------
        ConfigurationError
            If the signing secret is empty or the TTL is not positive.
        """
        if not secret:
            raise ConfigurationError("JWT_SECRET must be configured")
        if ttl_seconds <= 0:
            raise ConfigurationError("JWT_TTL_SECONDS must be positive")
        self._secret = secret
        self._issuer = issuer
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            issuer=settings.jwt_issuer,
            ttl_seconds=settings.jwt_ttl_seconds,
        )

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, account_id: str, now: datetime) -> IssuedToken:
        """Create a signed JWT for ``account_id`` that expires ``ttl_seconds`` after ``now``.

        Parameters
        ----------
        account_id:
            Account identifier embedded in the ``sub`` claim.
        now:
            Timezone-aware issue instant.
        """
        issued_at = int(now.timestamp())
        expires_at = issued_at + self._ttl_seconds
        payload: dict[str, Any] = {
            "sub": account_id,
            "iss": self._issuer,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return IssuedToken(
            token=token,
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
            expires_in=self._ttl_seconds,
        )

    def verify(self, token: str, now: datetime) -> str:
        """Verify ``token`` at instant ``now`` and return the account id it carries.

        Checks run in order: signature under the pinned algorithm, claim
        structure, then expiry.

        Raises
        ------
        TokenRejected
            With kind ``bad_signature``, ``malformed`` or ``expired``.
        """
        if not isinstance(token, str) or token.count(".") != 2:
            raise TokenRejected(TokenRejection.malformed)
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
            raise TokenRejected(TokenRejection.bad_signature) from exc
        except jwt.PyJWTError as exc:
            raise TokenRejected(TokenRejection.malformed) from exc

        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError as exc:
            raise TokenRejected(TokenRejection.malformed) from exc

        if claims.exp <= now.timestamp():
            raise TokenRejected(TokenRejection.expired)
        return claims.sub

