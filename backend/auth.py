# backend/auth.py
from functools import lru_cache
from typing import Optional
from fastapi import Depends, Header
from authlib.integrations.starlette_client import OAuth
from errors import Unauthorized
from config import get_settings
from services.password_hasher import BcryptHasher
from services.token_service import TokenError, TokenService

GOOGLE_SCOPE = "openid email profile"

oauth = OAuth()
_settings = get_settings()
if _settings.google_enabled:
    oauth.register(
        name='google', client_id=_settings.GOOGLE_CLIENT_ID, client_secret=_settings.GOOGLE_CLIENT_SECRET,
        server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
        client_kwargs={'scope': GOOGLE_SCOPE}
    )


@lru_cache
def get_token_service() -> TokenService:
    return TokenService(get_settings().JWT_SECRET)


@lru_cache
def get_password_hasher() -> BcryptHasher:
    return BcryptHasher(rounds=get_settings().BCRYPT_ROUNDS)


def authenticate(authorization: Optional[str], tokens: TokenService) -> str:
    """Resolve an ``Authorization`` header value to the token's subject.

    Only checks the token. Loading the user behind it is left to whoever
    needs the record.
    """
    scheme, _, token = (authorization or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthorized("missing token")
    try:
        return tokens.verify(token)
    except TokenError:
        raise Unauthorized("invalid or expired token")


async def get_current_user_id(
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> str:
    return authenticate(authorization, tokens)
