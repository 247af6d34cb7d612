"""
JWT creation and verification.

Tokens are issued by the account service (outside this API) and verified
here with a shared secret. The payload carries everything the access
rules need, so no user lookup happens per request:

    {"sub": <user id>, "email": ..., "user_type": ..., "gym_id": ...}
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from src.core.access import Principal, UserType


logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Raised when a token is malformed, badly signed, or missing claims."""
    pass


class TokenExpiredError(InvalidTokenError):
    """Raised when a token's exp claim is in the past."""
    pass


@dataclass
class TokenConfig:
    secret_key: str
    algorithm: str = "HS256"
    expires_minutes: int = 60 * 24


def create_access_token(principal: Principal, config: TokenConfig) -> str:
    """Sign an access token for principal."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": principal.user_id,
        "email": principal.email,
        "user_type": principal.user_type.value,
        "iat": now,
        "exp": now + timedelta(minutes=config.expires_minutes),
    }
    if principal.gym_id:
        payload["gym_id"] = principal.gym_id

    return jwt.encode(payload, config.secret_key, algorithm=config.algorithm)


def decode_access_token(token: str, config: TokenConfig) -> Principal:
    """
    Verify a token and return the principal it describes.

    Raises:
        TokenExpiredError: the token has expired
        InvalidTokenError: anything else wrong with the token
    """
    try:
        payload = jwt.decode(token, config.secret_key, algorithms=[config.algorithm])
    except ExpiredSignatureError as e:
        raise TokenExpiredError("Token expired") from e
    except JWTError as e:
        logger.warning("JWT decode failed", extra={"error": str(e)})
        raise InvalidTokenError("Invalid token") from e

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Token missing user ID")

    try:
        user_type = UserType(payload.get("user_type"))
    except ValueError as e:
        raise InvalidTokenError("Token has unknown user type") from e

    return Principal(
        user_id=str(user_id),
        email=payload.get("email", ""),
        user_type=user_type,
        gym_id=payload.get("gym_id"),
    )
