"""
Snowflake database connection management.

Provides connection factory and context manager for Snowflake operations.
Includes mock mode with in-memory storage for local development.

Using the repository pattern means most code never touches this module
directly - it goes through the repositories, which handle the translation
between domain models and database rows.
"""

import base64
import json
import logging
import re
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from .repositories.common import SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(key_pem: bytes) -> bytes:
    """
    Convert a PEM private key to the DER bytes snowflake-connector expects.
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    private_key = serialization.load_pem_private_key(
        key_pem,
        password=None,
        backend=default_backend()
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def _read_private_key(config: SnowflakeConfig) -> Optional[bytes]:
    if config.private_key_path:
        with open(config.private_key_path, 'rb') as key_file:
            return _load_private_key(key_file.read())
    if config.private_key_base64:
        return _load_private_key(base64.b64decode(config.private_key_base64))
    return None


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If a private key (path or base64) is set, uses key-pair auth
    - Otherwise, uses password auth

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
            conn.commit()
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    conn = None
    try:
        connect_params = {
            'account': config.account,
            'user': config.user,
            'database': config.database,
            'schema': config.schema,
            'warehouse': config.warehouse,
            'role': config.role,
            'client_session_keep_alive': True,
        }

        private_key = _read_private_key(config)
        if private_key:
            logger.info("Using key-pair authentication for Snowflake")
            connect_params['private_key'] = private_key
        elif config.password:
            logger.info("Using password authentication for Snowflake")
            connect_params['password'] = config.password
        else:
            raise SnowflakeConnectionError(
                "Either password or a private key must be provided"
            )

        conn = snowflake.connector.connect(**connect_params)

        logger.debug(
            "Established Snowflake connection",
            extra={
                "account": config.account,
                "database": config.database,
                "schema": config.schema,
            }
        )

        yield conn

    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}")

    finally:
        if conn:
            try:
                conn.close()
                logger.debug("Closed Snowflake connection")
            except Exception as e:
                logger.warning(
                    "Error closing Snowflake connection",
                    extra={"error": str(e)}
                )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

Predicate = Callable[[dict], bool]

_MERGE_TABLE = re.compile(r"MERGE INTO (\w+)", re.IGNORECASE)
_MERGE_COLUMNS = re.compile(r"%s\)?\s+AS\s+(\w+)", re.IGNORECASE)
_SELECT = re.compile(
    r"SELECT\s+(?P<columns>.+?)\s+FROM\s+(?P<table>\w+)"
    r"(?:\s+WHERE\s+(?P<where>.+?))?"
    r"(?:\s+GROUP BY\s+(?P<group>\w+))?"
    r"(?:\s+ORDER BY\s+(?P<order>.+?))?"
    r"(?:\s+LIMIT\s+%s\s+OFFSET\s+%s)?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_COMPARISON = re.compile(
    r"^(?P<lower>LOWER\()?(?P<column>\w+)\)?\s*(?P<op>=|<>)\s*(?:LOWER\()?(?P<value>%s|TRUE|FALSE)\)?$",
    re.IGNORECASE,
)
_IS_NULL = re.compile(r"^(\w+)\s+IS\s+NULL$", re.IGNORECASE)
_IN = re.compile(r"^(\w+)\s+IN\s+\(([%s,\s]+)\)$", re.IGNORECASE)
_ILIKE = re.compile(r"^(\w+)\s+ILIKE\s+%s$", re.IGNORECASE)
_ARRAYS_OVERLAP = re.compile(r"^ARRAYS_OVERLAP\((\w+),\s*PARSE_JSON\(%s\)\)$", re.IGNORECASE)
_DELETE = re.compile(r"DELETE FROM (?P<table>\w+)\s+WHERE\s+(?P<where>.+)$", re.IGNORECASE)
_LITERALS = {"TRUE": True, "FALSE": False}


def _split_top_level(clause: str, keyword: str) -> list[str]:
    """Split on AND/OR outside parentheses."""
    parts, depth, start = [], 0, 0
    token = f" {keyword} "
    upper = clause.upper()
    i = 0
    while i < len(clause):
        char = clause[i]
        if char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
        elif depth == 0 and upper.startswith(token, i):
            parts.append(clause[start:i])
            i += len(token)
            start = i
            continue
        i += 1
    parts.append(clause[start:])
    return [part.strip() for part in parts if part.strip()]


def _strip_parens(term: str) -> str:
    """Remove parentheses that wrap the whole term."""
    while term.startswith('(') and term.endswith(')'):
        depth = 0
        for i, char in enumerate(term):
            if char == '(':
                depth += 1
            elif char == ')':
                depth -= 1
                if depth == 0 and i < len(term) - 1:
                    return term
        term = term[1:-1].strip()
    return term


def _ilike(pattern: str, value) -> bool:
    if value is None:
        return False
    regex = "^" + ".*".join(re.escape(part) for part in str(pattern).lower().split("%")) + "$"
    return re.match(regex, str(value).lower(), re.DOTALL) is not None


def _as_list(value) -> list:
    """VARIANT arrays are stored as the JSON text that was bound."""
    if isinstance(value, str):
        return json.loads(value)
    return list(value or [])


def _compile_condition(clause: str, params: list) -> Predicate:
    """
    Compile a WHERE clause into a row predicate.

    Consumes values from `params` in the order their placeholders appear.
    Only the condition shapes the repositories emit are understood.
    """
    terms = [_compile_term(term, params) for term in _split_top_level(clause.strip(), "AND")]
    return lambda row: all(term(row) for term in terms)


def _compile_term(term: str, params: list) -> Predicate:
    term = _strip_parens(term.strip())

    alternatives = _split_top_level(term, "OR")
    if len(alternatives) > 1:
        compiled = [_compile_term(alt, params) for alt in alternatives]
        return lambda row: any(check(row) for check in compiled)

    match = _COMPARISON.match(term)
    if match:
        column = match.group("column").lower()
        raw = match.group("value").upper()
        expected = params.pop(0) if raw == "%S" else _LITERALS[raw]
        if match.group("lower"):
            expected = str(expected).lower()
            actual = lambda row: str(row.get(column) or "").lower()
        else:
            actual = lambda row: row.get(column)
        if match.group("op") == "=":
            return lambda row: actual(row) == expected
        return lambda row: actual(row) != expected

    match = _IS_NULL.match(term)
    if match:
        column = match.group(1).lower()
        return lambda row: row.get(column) is None

    match = _IN.match(term)
    if match:
        column = match.group(1).lower()
        count = match.group(2).count("%s")
        values = {params.pop(0) for _ in range(count)}
        return lambda row: row.get(column) in values

    match = _ILIKE.match(term)
    if match:
        column = match.group(1).lower()
        pattern = params.pop(0)
        return lambda row: _ilike(pattern, row.get(column))

    match = _ARRAYS_OVERLAP.match(term)
    if match:
        column = match.group(1).lower()
        wanted = set(json.loads(params.pop(0)))
        return lambda row: bool(wanted & set(_as_list(row.get(column))))

    raise ValueError(f"Mock cursor does not understand condition: {term}")


class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support the
    repositories without a real database: MERGE upserts keyed on the
    first source column, filtered SELECTs with GROUP BY / ORDER BY /
    LIMIT / OFFSET, COUNT(*), and filtered DELETEs.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        logger.debug(
            "Mock cursor execute",
            extra={"query": " ".join(query.split())[:100], "params": params}
        )

        statement = " ".join(query.split())
        params_list = list(params or ())
        keyword = statement.split(" ", 1)[0].upper()

        if keyword == 'MERGE':
            self._handle_merge(statement, params_list)
        elif keyword == 'DELETE':
            self._handle_delete(statement, params_list)
        elif keyword == 'SELECT':
            self._handle_select(statement, params_list)
        else:
            raise ValueError(f"Mock cursor does not support: {keyword}")

        return self

    def _table(self, name: str) -> dict:
        return self._storage.setdefault(name.lower(), {})

    def _handle_merge(self, query: str, params: list) -> None:
        table = self._table(_MERGE_TABLE.search(query).group(1))
        columns = [column.lower() for column in _MERGE_COLUMNS.findall(query)]
        row = dict(zip(columns, params))

        key = row[columns[0]]
        existing = table.get(key)
        if existing and 'created_at' in existing:
            row['created_at'] = existing['created_at']
        table[key] = row
        self._rowcount = 1

    def _handle_delete(self, query: str, params: list) -> None:
        match = _DELETE.match(query)
        if not match:
            raise ValueError(f"Mock cursor does not understand query: {query[:80]}")

        table = self._table(match.group('table'))
        predicate = _compile_condition(match.group('where'), params)
        doomed = [key for key, row in table.items() if predicate(row)]
        for key in doomed:
            del table[key]
        self._rowcount = len(doomed)

    def _handle_select(self, query: str, params: list) -> None:
        match = _SELECT.match(query)
        if not match:
            raise ValueError(f"Mock cursor does not understand query: {query[:80]}")

        table = self._table(match.group('table'))
        predicate = _compile_condition(match.group('where'), params) if match.group('where') else (lambda row: True)
        rows = [row for row in table.values() if predicate(row)]

        if match.group('group'):
            key = match.group('group').lower()
            counts: dict = {}
            for row in rows:
                counts[row.get(key)] = counts.get(row.get(key), 0) + 1
            rows = [{key: value, 'count(*)': count} for value, count in counts.items()]

        columns = [column.strip().lower() for column in match.group('columns').split(',')]
        if columns == ['count(*)']:
            self._results = [(len(rows),)]
            return

        if match.group('order'):
            for part in reversed(match.group('order').split(',')):
                tokens = part.split()
                column = tokens[0].lower()
                descending = len(tokens) > 1 and tokens[1].upper() == 'DESC'
                rows.sort(
                    key=lambda row: (row.get(column) is not None, row.get(column) or 0),
                    reverse=descending,
                )

        if len(params) >= 2:
            limit, offset = params[0], params[1]
            rows = rows[offset:offset + limit]

        self._results = [tuple(row.get(column) for column in columns) for row in rows]

    def fetchone(self):
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        return self._results

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass

    @property
    def rowcount(self) -> int:
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores rows in memory: {table_name: {primary_key: row_dict}}.
    This enables exercising the full API without a real database.

    Not suitable for production, but perfect for:
    - Local development
    - Unit and API tests
    - CI/CD environments
    """

    def __init__(self) -> None:
        self._storage: dict[str, dict[str, dict]] = {
            'schedule_templates': {},
            'workout_programs': {},
            'activity_templates': {},
            'benchmark_templates': {},
        }

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        """Commit transaction (no-op for mock, always auto-commits)."""
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        logger.debug("Mock connection close")

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        for table in self._storage.values():
            table.clear()


@contextmanager
def get_mock_snowflake_connection() -> Generator[MockSnowflakeConnection, None, None]:
    conn = MockSnowflakeConnection()
    try:
        yield conn
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Factory function that returns either a real or mock connection
    depending on mock_mode flag.
    """
    if mock_mode:
        with get_mock_snowflake_connection() as conn:
            yield conn
    else:
        if config is None:
            raise ValueError("config is required when not in mock mode")

        with get_snowflake_connection(config) as conn:
            yield conn
