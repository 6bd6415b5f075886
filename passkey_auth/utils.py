# (c) Copyright Datacraft, 2026
import logging

from fastapi import Request, Depends
from fastapi.security.utils import get_authorization_scheme_param
import jwt

from .config import Settings, get_settings
from .errors import NotAuthenticated

LOG_FORMAT = "[passkey_auth] %(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> logging.Logger:
    """Set the package log level, attaching one stream handler."""
    logger = logging.getLogger("passkey_auth")
    logger.setLevel(level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


def client_identity(request: Request) -> str:
    """Identity used for per-requester limits when no user is known."""
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def from_header(request: Request) -> str | None:
    authorization = request.headers.get("Authorization")
    scheme, token = get_authorization_scheme_param(authorization)

    if not authorization or scheme.lower() != "bearer":
        return None

    return token


def from_cookie(request: Request, cookie_name: str) -> str | None:
    return request.cookies.get(cookie_name, None)


def get_token(request: Request, cookie_name: str) -> str | None:
    return from_cookie(request, cookie_name) or from_header(request)


async def get_current_user_id(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str:
    """Extract current user ID from the session token."""
    token = get_token(request, settings.cookie_name)

    if not token:
        raise NotAuthenticated()

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.token_algorithm.value],
        )
    except jwt.ExpiredSignatureError:
        raise NotAuthenticated("Token has expired")
    except jwt.InvalidTokenError:
        raise NotAuthenticated("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise NotAuthenticated("Invalid token payload")
    return user_id
