"""Argon2id password hashing for credentials at rest."""

from __future__ import annotations

import logging
import secrets

from argon2 import PasswordHasher as Argon2Hasher
from argon2 import Type
from argon2.exceptions import (
    HashingError,
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)

from ..config import Settings
from ..errors import HashingFailure

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Salted, memory-hard password hashing with constant-time verification.

    Each digest embeds its own random salt and cost parameters, so hashes
    created under an older cost configuration keep verifying after the
    parameters are tuned.
    """

    def __init__(
        self,
        *,
        time_cost: int,
        memory_cost: int,
        parallelism: int,
    ) -> None:
        """Build the Argon2id hasher and a decoy digest for equal-cost rejections."""
        self._hasher = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )
        self._decoy_hash = self.hash(secrets.token_urlsafe(24))

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(
            time_cost=settings.password_time_cost,
            memory_cost=settings.password_memory_cost,
            parallelism=settings.password_parallelism,
        )

    def hash(self, plaintext: str) -> str:
        """Return an encoded Argon2id digest of ``plaintext``.

        Raises
        ------
        ValueError
            If ``plaintext`` is empty.
        HashingFailure
            If the underlying library cannot produce a digest.
        """
        if not plaintext:
            raise ValueError("password must not be empty")
        try:
            return self._hasher.hash(plaintext)
        except HashingError as exc:
            logger.error("password hashing failed")
            raise HashingFailure() from exc

    def verify(self, plaintext: str, hashed: str | None) -> bool:
        """Return ``True`` only when ``plaintext`` matches ``hashed``.

        Malformed digests are checked against the decoy hash so that the
        rejection costs the same as a wrong password.
        """
        if not isinstance(hashed, str) or not hashed.startswith("$argon2"):
            return self.verify_decoy(plaintext)
        try:
            return self._hasher.verify(hashed, plaintext or "")
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError):
            return self.verify_decoy(plaintext)

    def verify_decoy(self, plaintext: str | None) -> bool:
        """Spend one verification against the decoy digest and return ``False``."""
        try:
            self._hasher.verify(self._decoy_hash, plaintext or "")
        except (VerificationError, InvalidHashError):
            pass
        return False
