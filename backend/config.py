# backend/config.py
import os
from functools import lru_cache
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv()


class Settings(BaseModel):
    """Process-wide configuration, read once at startup and never mutated."""
    model_config = ConfigDict(frozen=True)

    JWT_SECRET: str
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    CLIENT_URL: str = "http://localhost:3000"
    DATABASE_URL: str = "sqlite+aiosqlite:///./auth.db"
    BCRYPT_ROUNDS: int = 12
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @property
    def google_enabled(self) -> bool:
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET)


def load_settings() -> Settings:
    jwt_secret = os.getenv("JWT_SECRET")
    if not jwt_secret:
        raise ValueError("JWT_SECRET is not set in .env file!")
    values = {"JWT_SECRET": jwt_secret}
    for key in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "CLIENT_URL",
                "DATABASE_URL", "BCRYPT_ROUNDS", "LOG_LEVEL", "LOG_JSON"):
        value = os.getenv(key)
        if value:
            values[key] = value
    return Settings(**values)


@lru_cache
def get_settings() -> Settings:
    return load_settings()
