"""
Shared pieces for the Snowflake repositories.

Each aggregate (schedule template, workout program, activity template)
is stored as one row: a handful of plain columns used for filtering and
ordering, plus the full document in a VARIANT column. Flags that are
filtered on (is_active, is_default) are read back from their columns,
not from the document.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol


logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "GYMFLOW"
    schema: str = "APP"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


class NotFoundError(Exception):
    """Raised when a requested row doesn't exist or is inactive."""
    pass


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


def to_json(document: dict) -> str:
    return json.dumps(document, default=_json_default)


def _json_default(value: Any):
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(value)
    return datetime.utcnow()


def parse_variant_json(variant_data):
    """
    Parse Snowflake VARIANT data that might be a string or already parsed.

    snowflake-connector-python returns VARIANT columns as JSON strings;
    the mock connection hands back whatever was stored.
    """
    if not variant_data:
        return None

    if isinstance(variant_data, str):
        try:
            return json.loads(variant_data)
        except json.JSONDecodeError as e:
            logger.error(
                "Failed to parse VARIANT JSON string",
                extra={"variant_data": variant_data[:100], "error": str(e)}
            )
            return None

    return variant_data
