"""
Access token handling.

Tokens are signed JWTs carrying the caller's id, email, role and gym.
"""

from .tokens import (
    InvalidTokenError,
    TokenExpiredError,
    TokenConfig,
    create_access_token,
    decode_access_token,
)

__all__ = [
    "InvalidTokenError",
    "TokenExpiredError",
    "TokenConfig",
    "create_access_token",
    "decode_access_token",
]
