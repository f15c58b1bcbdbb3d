from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from jose import JWTError, jwt

from .config import Settings
from .errors import Unauthorized
from .log import get_logger

logger = get_logger(__name__)

# The header carries the token exactly as issued, without a "Bearer " prefix.
token_header = APIKeyHeader(name="Authorization", auto_error=False)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str, rounds: int = 10) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        logger.warning("password_hash_unreadable")
        return False


def create_access_token(user_id: int, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"userId": user_id, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> int:
    """Return the user id carried by a valid, unexpired token."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise Unauthorized("Token is not valid") from exc
    user_id = payload.get("userId")
    if not isinstance(user_id, int):
        raise Unauthorized("Token is not valid")
    return user_id


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user_id(
    request: Request,
    token: Optional[str] = Depends(token_header),
    settings: Settings = Depends(get_app_settings),
) -> int:
    if not token:
        raise Unauthorized("No token, authorization denied")
    try:
        user_id = decode_access_token(token, settings)
    except Unauthorized:
        logger.info("token_rejected", path=request.url.path)
        raise
    request.state.user_id = user_id
    return user_id
