# backend/models.py
import enum
from typing import Optional
from sqlmodel import Field, SQLModel


class AuthMethod(str, enum.Enum):
    PASSWORD = "password"
    GOOGLE = "google"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: Optional[str] = Field(default=None)
    email: str = Field(unique=True, index=True)
    passwordHash: Optional[str] = Field(default=None)
    googleId: Optional[str] = Field(default=None, unique=True)
    # Fixed at creation; decides which login path the record accepts.
    authMethod: AuthMethod = Field(default=AuthMethod.PASSWORD, nullable=False)


class UserRead(SQLModel):
    id: int
    name: Optional[str] = None
    email: str


class UserProfile(UserRead):
    authMethod: AuthMethod
    googleId: Optional[str] = None
