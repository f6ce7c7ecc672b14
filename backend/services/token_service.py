# backend/services/token_service.py
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt

ALGORITHM = "HS256"
TOKEN_TTL = timedelta(hours=1)


class TokenError(Exception):
    pass


class TokenMalformed(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class TokenService:
    """Issues and verifies stateless bearer tokens.

    A token carries only ``sub`` (the user id), ``iat`` and ``exp``. There is
    no refresh and no revocation: once ``exp`` passes the token is dead.
    """

    def __init__(self, secret: str, ttl: timedelta = TOKEN_TTL):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.ttl = ttl

    def issue(self, subject: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {"sub": str(subject), "iat": issued_at, "exp": issued_at + self.ttl}
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(
                token, self._secret, algorithms=[ALGORITHM],
                options={"require_sub": True, "require_iat": True, "require_exp": True},
            )
        except ExpiredSignatureError as e:
            raise TokenExpired("Token has expired") from e
        except JWTError as e:
            raise TokenMalformed("Token is malformed or its signature is invalid") from e
        return payload["sub"]
