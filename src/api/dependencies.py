"""
FastAPI dependency injection.

Dependencies provide instances of repositories, the authenticated
principal, and configuration to route handlers. Using dependency
injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Resource lifecycle (connections) is managed properly

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated, Generator, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import Settings, get_settings
from ..core.access import Principal
from ..infrastructure.auth.tokens import (
    InvalidTokenError,
    TokenConfig,
    TokenExpiredError,
    decode_access_token,
)
from ..infrastructure.snowflake.client import MockSnowflakeConnection, create_snowflake_connection
from ..infrastructure.snowflake.repositories import (
    ActivityTemplateRepository,
    BenchmarkTemplateRepository,
    ScheduleTemplateRepository,
    SnowflakeConfig,
    SnowflakeConnection,
    WorkoutProgramRepository,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Global mock connection (shared across requests so data persists in mock mode)
_mock_snowflake_connection: Optional[MockSnowflakeConnection] = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def get_token_config(
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenConfig:
    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error",
        )

    return TokenConfig(
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_expires_minutes,
    )


async def get_current_principal(
    token_config: Annotated[TokenConfig, Depends(get_token_config)],
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Principal:
    """
    Validate the bearer token and return the caller.

    Raises 401 if the token is missing, expired, or invalid.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        principal = decode_access_token(credentials.credentials, token_config)
    except TokenExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.debug(
        "Authenticated request",
        extra={"user_id": principal.user_id, "user_type": principal.user_type.value}
    )
    return principal


# ---------------------------------------------------------------------------
# Database Dependencies
# ---------------------------------------------------------------------------

def get_snowflake_connection(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide a database connection for the duration of one request.

    This is a generator function (yields instead of returns) so the
    connection is closed after the response is sent. FastAPI caches the
    dependency per request, so every repository in a request shares it.

    In mock mode, we reuse the same connection across requests
    so that data persists during the testing session.
    """
    global _mock_snowflake_connection

    if settings.snowflake_mock_mode:
        if _mock_snowflake_connection is None:
            _mock_snowflake_connection = MockSnowflakeConnection()
            logger.info("Created shared mock Snowflake connection")
        yield _mock_snowflake_connection
    else:
        config = SnowflakeConfig(
            account=settings.snowflake_account,
            user=settings.snowflake_user,
            password=settings.snowflake_password or None,
            private_key_path=settings.snowflake_private_key_path,
            private_key_base64=settings.snowflake_private_key_base64,
            database=settings.snowflake_database,
            schema=settings.snowflake_schema,
            warehouse=settings.snowflake_warehouse,
            role=settings.snowflake_role,
        )

        with create_snowflake_connection(config=config) as conn:
            yield conn


def get_schedule_template_repository(
    conn: Annotated[SnowflakeConnection, Depends(get_snowflake_connection)],
) -> ScheduleTemplateRepository:
    return ScheduleTemplateRepository(conn)


def get_workout_program_repository(
    conn: Annotated[SnowflakeConnection, Depends(get_snowflake_connection)],
) -> WorkoutProgramRepository:
    return WorkoutProgramRepository(conn)


def get_activity_template_repository(
    conn: Annotated[SnowflakeConnection, Depends(get_snowflake_connection)],
) -> ActivityTemplateRepository:
    return ActivityTemplateRepository(conn)


def get_benchmark_template_repository(
    conn: Annotated[SnowflakeConnection, Depends(get_snowflake_connection)],
) -> BenchmarkTemplateRepository:
    return BenchmarkTemplateRepository(conn)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
ScheduleTemplateRepositoryDep = Annotated[ScheduleTemplateRepository, Depends(get_schedule_template_repository)]
WorkoutProgramRepositoryDep = Annotated[WorkoutProgramRepository, Depends(get_workout_program_repository)]
ActivityTemplateRepositoryDep = Annotated[ActivityTemplateRepository, Depends(get_activity_template_repository)]
BenchmarkTemplateRepositoryDep = Annotated[BenchmarkTemplateRepository, Depends(get_benchmark_template_repository)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
