"""Request tracking middleware and JWT authentication."""

import uuid
from datetime import UTC, datetime, timedelta

from fastapi import Header, HTTPException, Request, status
from jose import JWTError, jwt
from loguru import logger

from .config import settings
from .host import ANONYMOUS, SiteUser
from .widgets import VOTE_RIGHT


async def add_request_id(request: Request, call_next):
    """Add request ID to context for tracking.

    Args:
        request: Incoming FastAPI request.
        call_next: Next middleware or handler in chain.

    Returns:
        Response with X-Request-ID header.

    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id

    with logger.contextualize(request_id=request_id):
        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else None,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.debug(
            "Request completed",
            status_code=response.status_code,
        )

        return response


def create_token(user_id: int, username: str) -> str:
    """Create a JWT token for a wiki user.

    Args:
        user_id: The user identifier to encode in the token.
        username: The user name, kept with votes.

    Returns:
        Encoded JWT token as string.
    """
    expires_at = datetime.now(UTC) + timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {
        "sub": str(user_id),
        "name": username,
        "exp": expires_at,
        "iat": datetime.now(UTC),
    }
    token: str = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token


def decode_token(token: str) -> SiteUser:
    """Turn a token into the signed-in user.

    Raises:
        JWTError: If the token is invalid, expired or malformed.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    sub = payload.get("sub")
    name = payload.get("name")
    if not sub or not name or not str(sub).isdigit():
        raise JWTError("Token is missing user claims")
    return SiteUser(id=int(sub), name=name, rights=frozenset({VOTE_RIGHT}))


async def get_current_user(authorization: str = Header()) -> SiteUser:
    """Extract and validate the user from a JWT token.

    Args:
        authorization: Authorization header value (Bearer token).

    Returns:
        The signed-in user.

    Raises:
        HTTPException: If token is invalid or expired.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not authorization.startswith("Bearer "):
        raise credentials_exception

    try:
        return decode_token(authorization.removeprefix("Bearer "))
    except JWTError as e:
        raise credentials_exception from e


async def get_optional_user(authorization: str | None = Header(default=None)) -> SiteUser:
    """Like get_current_user, but anonymous readers get ANONYMOUS."""
    if authorization is None:
        return ANONYMOUS
    return await get_current_user(authorization)
