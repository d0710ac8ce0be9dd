"""Signed session tokens carrying the authenticated username."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

import jwt

from .errors import AuthError

DEFAULT_ALGORITHM = "HS256"


class TokenSigner:
    """Issue and verify JWT session tokens with a shared secret."""

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = DEFAULT_ALGORITHM,
        ttl: Optional[timedelta] = None,
    ) -> None:
        if not secret_key:
            raise ValueError("A secret key is required to sign session tokens")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._ttl = ttl

    @property
    def ttl(self) -> Optional[timedelta]:
        return self._ttl

    def sign(self, claims: Mapping[str, Any]) -> str:
        payload: Dict[str, Any] = dict(claims)
        now = self._now()
        payload["iat"] = now
        if self._ttl is not None:
            payload["exp"] = now + self._ttl
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("Session token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError("Invalid session token") from exc

    def issue(self, username: str) -> str:
        return self.sign({"username": username})

    def identify(self, token: str) -> str:
        """Return the username carried by a valid token."""

        claims = self.verify(token)
        username = claims.get("username")
        if not isinstance(username, str) or not username:
            raise AuthError("Invalid session token")
        return username

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["DEFAULT_ALGORITHM", "TokenSigner"]
