# backend/main.py
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import quote, urlencode
import httpx
import structlog
from authlib.integrations.starlette_client import OAuthError
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config import get_settings
from database import create_db_and_tables, get_session
from errors import AuthError, NotFound, ServerFault, auth_error_handler, validation_error_handler
from logging_config import configure_logging
from models import UserProfile, UserRead
from auth import oauth, get_current_user_id, get_password_hasher, get_token_service
from services.identity import ExternalLoginFailure, IdentityService
from services.password_hasher import PasswordHasher
from services.token_service import TokenService
from services.user_store import SQLUserStore

settings = get_settings()
configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
logger = structlog.get_logger()

MSG_GOOGLE_DISABLED = "Google login is not configured."
MSG_GOOGLE_FAILED = "Google authentication failed. Please try again."
MSG_GOOGLE_UNVERIFIED = "Google has not verified this email address."

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("app.starting", google_enabled=settings.google_enabled)
    await create_db_and_tables()
    logger.info("app.started")
    yield

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware, allow_origins=[settings.CLIENT_URL], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)
# Only carries the OAuth state between /google and /google/callback.
app.add_middleware(SessionMiddleware, secret_key=settings.JWT_SECRET)
app.add_exception_handler(AuthError, auth_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

# --- Pydantic Models ---
class SignupRequest(BaseModel): name: Optional[str] = None; email: Optional[str] = None; password: Optional[str] = None
class LoginRequest(BaseModel): email: Optional[str] = None; password: Optional[str] = None

class AuthResponse(BaseModel):
    token: str
    user: UserRead

class ProfileResponse(BaseModel):
    user: UserProfile

def get_identity_service(
    session: AsyncSession = Depends(get_session),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
) -> IdentityService:
    return IdentityService(SQLUserStore(session), hasher, tokens)

def redirect_to_client(**params: str) -> RedirectResponse:
    return RedirectResponse(url=f"{settings.CLIENT_URL}?{urlencode(params, quote_via=quote)}")

# --- API Routes ---
@app.post("/api/auth/signup", response_model=AuthResponse)
async def signup(body: SignupRequest, identity: IdentityService = Depends(get_identity_service)):
    result = await identity.signup(body.name, body.email, body.password)
    return AuthResponse(token=result.token, user=UserRead.model_validate(result.user, from_attributes=True))

@app.post("/api/auth/login", response_model=AuthResponse)
async def login(body: LoginRequest, identity: IdentityService = Depends(get_identity_service)):
    result = await identity.login(body.email, body.password)
    return AuthResponse(token=result.token, user=UserRead.model_validate(result.user, from_attributes=True))

@app.get("/api/auth/google")
async def google_login(request: Request):
    google = oauth.create_client('google')
    if google is None:
        return redirect_to_client(msg=MSG_GOOGLE_DISABLED)
    redirect_uri = request.url_for('google_callback')
    return await google.authorize_redirect(request, redirect_uri)

@app.get("/api/auth/google/callback", name="google_callback")
async def google_callback(request: Request, identity: IdentityService = Depends(get_identity_service)):
    google = oauth.create_client('google')
    if google is None:
        return redirect_to_client(msg=MSG_GOOGLE_DISABLED)
    try:
        token = await google.authorize_access_token(request)
    except (OAuthError, httpx.HTTPError) as e:
        logger.warning("auth.oauth_exchange_failed", error=repr(e))
        return redirect_to_client(msg=MSG_GOOGLE_FAILED)

    user_info = token.get('userinfo') or {}
    if user_info.get('email_verified') is False:
        return redirect_to_client(msg=MSG_GOOGLE_UNVERIFIED)
    try:
        result = await identity.reconcile_external_identity(
            user_info.get('sub'), user_info.get('email'), user_info.get('name')
        )
    except ServerFault as e:
        return redirect_to_client(msg=e.message)

    if isinstance(result, ExternalLoginFailure):
        return redirect_to_client(msg=result.message)
    return redirect_to_client(token=result.token)

@app.get("/api/auth/profile", response_model=ProfileResponse)
async def get_profile(user_id: str = Depends(get_current_user_id), session: AsyncSession = Depends(get_session)):
    store = SQLUserStore(session)
    try:
        user = await store.find_by_id(int(user_id)) if user_id.isdigit() else None
    except SQLAlchemyError as e:
        logger.error("auth.profile_lookup_failed", user_id=user_id, error=repr(e))
        raise ServerFault() from e
    if user is None:
        raise NotFound("User not found")
    return ProfileResponse(user=UserProfile.model_validate(user, from_attributes=True))

@app.get("/")
async def read_root():
    return {"message": "Auth backend is running!"}
