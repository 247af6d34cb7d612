"""
GymFlow configuration.

Everything comes from environment variables (or a .env file) and is
validated once at startup. The only secret the API cannot run without is
JWT_SECRET; Snowflake credentials are optional in mock mode, which keeps
all data in memory.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the API process. Field names map to upper-case env vars.

    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "GymFlow API"
    api_version: str = "v1"

    # Authentication
    jwt_secret: str = Field(
        default="",
        description="Shared secret used to verify access tokens. Required."
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="Signing algorithm for access tokens."
    )
    jwt_expires_minutes: int = Field(
        default=60 * 24,
        description="Lifetime of tokens issued by scripts/issue_token.py."
    )

    # Snowflake Configuration
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Base64-encoded private key (for deployment, alternative to file path)"
    )
    snowflake_database: str = Field(
        default="GYMFLOW",
        description="Snowflake database name"
    )
    snowflake_schema: str = Field(
        default="APP",
        description="Snowflake schema name"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real Snowflake connection. Enables local dev without DB."
    )

    # Pagination
    default_page_size: int = Field(
        default=20,
        description="Page size used when a list request doesn't specify one."
    )
    max_page_size: int = Field(
        default=100,
        description="Upper bound on the page size a client may request."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Names of required settings that are unset, as env var names.

        Used by the startup log and the readiness check.
        """
        missing = []

        if not self.jwt_secret:
            missing.append("JWT_SECRET")

        # Snowflake only required if not in mock mode
        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            if (
                not self.snowflake_password
                and not self.snowflake_private_key_path
                and not self.snowflake_private_key_base64
            ):
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() or override the dependency.
    """
    return Settings()
