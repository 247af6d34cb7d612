"""
Unit tests for access token signing and verification.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from src.core.access import Principal, UserType
from src.infrastructure.auth import (
    InvalidTokenError,
    TokenConfig,
    TokenExpiredError,
    create_access_token,
    decode_access_token,
)


CONFIG = TokenConfig(secret_key="unit-test-secret")


class TestAccessTokens:

    def test_round_trip_preserves_principal(self):
        principal = Principal(user_id="u1", email="coach@example.com", user_type=UserType.COACH, gym_id="gym-1")

        decoded = decode_access_token(create_access_token(principal, CONFIG), CONFIG)

        assert decoded == principal

    def test_admin_token_has_no_gym(self):
        principal = Principal(user_id="a1", email="admin@example.com", user_type=UserType.ADMIN)

        token = create_access_token(principal, CONFIG)

        assert "gym_id" not in jwt.get_unverified_claims(token)
        assert decode_access_token(token, CONFIG).gym_id is None

    def test_wrong_secret_is_invalid(self):
        principal = Principal(user_id="u1", email="x@example.com", user_type=UserType.CLIENT, gym_id="g")
        token = create_access_token(principal, TokenConfig(secret_key="other-secret"))

        with pytest.raises(InvalidTokenError):
            decode_access_token(token, CONFIG)

    def test_expired_token_raises_expired(self):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "u1", "user_type": "coach", "iat": past, "exp": past + timedelta(hours=1)},
            CONFIG.secret_key,
            algorithm=CONFIG.algorithm,
        )

        with pytest.raises(TokenExpiredError):
            decode_access_token(token, CONFIG)

    def test_missing_subject_is_invalid(self):
        token = jwt.encode({"user_type": "coach"}, CONFIG.secret_key, algorithm=CONFIG.algorithm)

        with pytest.raises(InvalidTokenError, match="user ID"):
            decode_access_token(token, CONFIG)

    def test_unknown_user_type_is_invalid(self):
        token = jwt.encode({"sub": "u1", "user_type": "superuser"}, CONFIG.secret_key, algorithm=CONFIG.algorithm)

        with pytest.raises(InvalidTokenError, match="user type"):
            decode_access_token(token, CONFIG)

    def test_garbage_is_invalid(self):
        with pytest.raises(InvalidTokenError):
            decode_access_token("not-a-jwt", CONFIG)
