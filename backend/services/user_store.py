# backend/services/user_store.py
from dataclasses import dataclass
from typing import Optional, Protocol, Union
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from models import User


@dataclass(frozen=True)
class Created:
    user: User


@dataclass(frozen=True)
class Saved:
    user: User


@dataclass(frozen=True)
class DuplicateKey:
    """A unique column (email or googleId) already holds this value."""


CreateResult = Union[Created, DuplicateKey]
SaveResult = Union[Saved, DuplicateKey]


class UserStore(Protocol):
    async def find_by_email(self, email: str) -> Optional[User]: ...
    async def find_by_id(self, user_id: int) -> Optional[User]: ...
    async def create(self, user: User) -> CreateResult: ...
    async def save(self, user: User) -> SaveResult: ...


class SQLUserStore:
    """UserStore backed by the ``user`` table.

    Uniqueness is enforced by the database; a losing write comes back as
    ``DuplicateKey`` with the session rolled back and usable again. Any other
    SQLAlchemy error propagates to the caller.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: int) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def create(self, user: User) -> CreateResult:
        if not await self._commit(user):
            return DuplicateKey()
        return Created(user)

    async def save(self, user: User) -> SaveResult:
        if not await self._commit(user):
            return DuplicateKey()
        return Saved(user)

    async def _commit(self, user: User) -> bool:
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            return False
        await self.session.refresh(user)
        return True
