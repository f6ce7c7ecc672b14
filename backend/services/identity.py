# backend/services/identity.py
"""Signup, login and Google identity reconciliation.

Every decision about which credential path an email may use is taken from
the stored ``authMethod``, never from the path being attempted. That is what
keeps a password user from being taken over through Google with the same
email, and a Google user from gaining a password.
"""
import re
from dataclasses import dataclass
from typing import Optional, Union
import structlog
from sqlalchemy.exc import SQLAlchemyError
from errors import DuplicateEmail, InvalidCredentials, InvalidInput, MethodConflict, ServerFault
from models import AuthMethod, User
from services.password_hasher import PasswordHasher
from services.token_service import TokenService
from services.user_store import Created, DuplicateKey, UserStore

logger = structlog.get_logger()

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MSG_SIGNUP_GOOGLE_CONFLICT = "This email is registered with Google authentication. Please log in using Google."
MSG_LOGIN_GOOGLE_CONFLICT = "This account is registered with Google authentication. Please log in using Google."
MSG_DUPLICATE_EMAIL = "Email already in use. Try logging in or use a different email."
MSG_INVALID_CREDENTIALS = "Invalid credentials"
MSG_PASSWORD_CONFLICT = (
    "This email is registered with password authentication. Please log in using the password method."
)
MSG_GOOGLE_ID_MISMATCH = "This email is already linked to a different Google account."
MSG_GOOGLE_ID_TAKEN = "This Google account is already linked to another user."
MSG_GOOGLE_NO_EMAIL = "Google did not return an email address for this account."


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: User


@dataclass(frozen=True)
class ExternalLoginSuccess:
    token: str
    user: User


@dataclass(frozen=True)
class ExternalLoginFailure:
    message: str


ExternalLoginResult = Union[ExternalLoginSuccess, ExternalLoginFailure]


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class IdentityService:
    def __init__(self, store: UserStore, hasher: PasswordHasher, tokens: TokenService):
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    async def signup(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> AuthResult:
        name = (name or "").strip()
        email = normalize_email(email)
        if not name or not email or not password:
            raise InvalidInput("Name, email and password are required.")
        if not EMAIL_PATTERN.match(email):
            raise InvalidInput("Please enter a valid email address.")

        try:
            existing = await self.store.find_by_email(email)
            if existing is not None:
                raise self._signup_conflict(existing)

            user = User(name=name, email=email, passwordHash=self.hasher.hash(password),
                        authMethod=AuthMethod.PASSWORD)
            result = await self.store.create(user)
            if isinstance(result, DuplicateKey):
                # Lost a race with a concurrent create for the same email.
                winner = await self.store.find_by_email(email)
                if winner is None:
                    logger.error("auth.signup_duplicate_without_winner", email=email)
                    raise ServerFault()
                raise self._signup_conflict(winner)

            token = self._issue(result.user)
        except (SQLAlchemyError, ValueError) as e:
            logger.error("auth.signup_failed", email=email, error=repr(e))
            raise ServerFault() from e

        logger.info("auth.signup_succeeded", user_id=result.user.id)
        return AuthResult(token=token, user=result.user)

    async def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        email = normalize_email(email)
        if not email or not password:
            raise InvalidInput("Email and password are required.")

        try:
            user = await self.store.find_by_email(email)
            if user is None:
                # Same bcrypt cost as a wrong password, so timing does not reveal the account.
                self.hasher.verify(password, self.hasher.dummy_hash)
                raise InvalidCredentials(MSG_INVALID_CREDENTIALS)
            if user.authMethod == AuthMethod.GOOGLE:
                raise MethodConflict(MSG_LOGIN_GOOGLE_CONFLICT)
            if not user.passwordHash or not self.hasher.verify(password, user.passwordHash):
                raise InvalidCredentials(MSG_INVALID_CREDENTIALS)
            token = self._issue(user)
        except (SQLAlchemyError, ValueError) as e:
            logger.error("auth.login_failed", email=email, error=repr(e))
            raise ServerFault() from e

        logger.info("auth.login_succeeded", user_id=user.id)
        return AuthResult(token=token, user=user)

    async def reconcile_external_identity(
        self, external_id: Optional[str], email: Optional[str], display_name: Optional[str]
    ) -> ExternalLoginResult:
        """Map a validated Google identity onto a user record.

        Conflicts come back as ``ExternalLoginFailure`` rather than being
        raised: the caller is a browser redirect and has to forward the text
        to the frontend. Infrastructure errors still raise ``ServerFault``.
        """
        email = normalize_email(email)
        if not external_id or not email:
            return ExternalLoginFailure(MSG_GOOGLE_NO_EMAIL)

        try:
            user = await self.store.find_by_email(email)
            if user is None:
                new_user = User(name=display_name or None, email=email, googleId=external_id,
                                authMethod=AuthMethod.GOOGLE)
                created = await self.store.create(new_user)
                if isinstance(created, Created):
                    logger.info("auth.google_user_created", user_id=created.user.id)
                    return ExternalLoginSuccess(token=self._issue(created.user), user=created.user)
                # Either a concurrent create for this email won, or the
                # Google id is already attached to some other email.
                user = await self.store.find_by_email(email)
                if user is None:
                    logger.warning("auth.google_id_taken", email=email)
                    return ExternalLoginFailure(MSG_GOOGLE_ID_TAKEN)

            return await self._reconcile_existing(user, external_id)
        except (SQLAlchemyError, ValueError) as e:
            logger.error("auth.google_reconcile_failed", email=email, error=repr(e))
            raise ServerFault() from e

    async def _reconcile_existing(self, user: User, external_id: str) -> ExternalLoginResult:
        if user.authMethod == AuthMethod.PASSWORD:
            logger.info("auth.google_rejected_password_user", user_id=user.id)
            return ExternalLoginFailure(MSG_PASSWORD_CONFLICT)

        if user.googleId is None:
            user.googleId = external_id
            saved = await self.store.save(user)
            if isinstance(saved, DuplicateKey):
                return ExternalLoginFailure(MSG_GOOGLE_ID_TAKEN)
            logger.info("auth.google_id_linked", user_id=user.id)
        elif user.googleId != external_id:
            logger.warning("auth.google_id_mismatch", user_id=user.id)
            return ExternalLoginFailure(MSG_GOOGLE_ID_MISMATCH)

        return ExternalLoginSuccess(token=self._issue(user), user=user)

    def _issue(self, user: User) -> str:
        return self.tokens.issue(str(user.id))

    @staticmethod
    def _signup_conflict(existing: User) -> Exception:
        if existing.authMethod == AuthMethod.GOOGLE:
            return MethodConflict(MSG_SIGNUP_GOOGLE_CONFLICT)
        return DuplicateEmail(MSG_DUPLICATE_EMAIL)
