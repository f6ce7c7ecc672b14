# backend/errors.py
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AuthError(Exception):
    """Base for every failure that reaches the HTTP boundary as ``{"msg": ...}``."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(AuthError):
    pass


class DuplicateEmail(AuthError):
    pass


class MethodConflict(AuthError):
    pass


class InvalidCredentials(AuthError):
    pass


class Unauthorized(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(AuthError):
    status_code = status.HTTP_404_NOT_FOUND


class ServerFault(AuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Server error"):
        super().__init__(message)


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(status_code=exc.status_code, content={"msg": exc.message}, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Clients of this API only ever read "msg"; keep the 400 shape for bad bodies too.
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"msg": "Invalid request body"})
