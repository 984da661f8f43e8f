"""Bearer credential verification.

Token issuance lives elsewhere; this module only maps a bearer token to a
user identity or rejects it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

import jwt

from gallery.errors import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserIdentity:
    """Authenticated caller."""
    user_id: int
    username: str
    role_id: Optional[int] = None


class AuthVerifier(ABC):
    """Maps a bearer credential to a user identity."""

    @abstractmethod
    def verify(self, token: str) -> UserIdentity:
        """Verify a bearer token.

        Args:
            token: Raw token taken from the Authorization header.

        Returns:
            UserIdentity of the caller.

        Raises:
            AuthenticationError: If the token is invalid or expired.
        """
        pass


class JWTAuthVerifier(AuthVerifier):
    """Verifies HS256 JWTs carrying ``userId``/``username`` claims."""

    def __init__(self, secret: str, algorithms: Sequence[str] = ("HS256",)):
        if not secret:
            raise ValueError("JWT secret is required")
        self.secret = secret
        self.algorithms = list(algorithms)

    def verify(self, token: str) -> UserIdentity:
        try:
            payload = jwt.decode(token, self.secret, algorithms=self.algorithms)
        except jwt.InvalidTokenError as exc:
            logger.debug(f"Rejected bearer token: {exc}")
            raise AuthenticationError("Invalid or expired token") from exc

        try:
            return UserIdentity(
                user_id=int(payload["userId"]),
                username=str(payload["username"]),
                role_id=payload.get("role_id"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthenticationError("Invalid or expired token") from exc
