"""Central database manager.

Owns one MySQL session (PyMySQL) and provides escaping, formatting and
CRUD-shaped query helpers, result shaping, a transaction helper and a cache
for schema metadata read from INFORMATION_SCHEMA.

One manager holds one session and keeps a single "last result" slot, so an
instance must not be shared by concurrent callers. Use one manager per
logical request or session.
"""

import contextlib
import datetime
import decimal
import enum
import json
import logging
import re
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    NoReturn,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
    cast,
)

import boto3
import pymysql
import pymysql.cursors
from pymysql import err as pymysql_err
from pymysql.constants import CLIENT

from .config import DatabaseConfig, TlsMaterial, resolve_tls_material
from .debug_util import DebugUtil
from .exceptions import (
    ConstraintError,
    DatabaseError,
    DatabaseTypeError,
    DBConnectionError,
    ForeignKeyError,
    IntegrityError,
    QueryBuildError,
    QueryError,
    SchemaError,
    TableNotFoundError,
)
from .interfaces import ConnectionProtocol, CursorProtocol
from .sql_format import (
    Literal,
    Value,
    build_assignments,
    build_insert,
    build_where,
    escape_id,
    escape_value,
    format_sql,
    split_statements,
    to_driver_placeholders,
)

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[..., ConnectionProtocol]
Row = Dict[str, Any]

# MySQL error codes grouped by the exception they translate to
_TABLE_NOT_FOUND_CODES = {1146}
_SCHEMA_ERROR_CODES = {1054}
_FOREIGN_KEY_CODES = {1216, 1217, 1451, 1452}
_CONSTRAINT_CODES = {1048, 1062, 1364}
_CLIENT_ERROR_RANGE = range(2000, 3000)

_TRUE_TOKENS = {"true", "yes", "y", "1"}
_FALSE_TOKENS = {"false", "no", "n", "0"}

_ENV_VAR_NAME_RE = re.compile(r"^[A-Za-z0-9_$.]+$")
_CHANGED_ROWS_RE = re.compile(r"Changed:\s*(\d+)")


class SchemaKind(enum.Enum):
    """Kinds of column metadata kept in the schema cache."""

    COLUMNS = "table-columns"
    DEFAULT_VALUES = "table-column-default-values"
    DATA_TYPES = "table-column-data-types"


@dataclass
class QueryResult:
    """Outcome of one round trip.

    Attributes:
        sql: Exact SQL text sent to the server.
        rows: Rows of the last result set that returned rows.
        affected_rows: Rows inserted, updated or deleted, summed over the batch.
        inserted_id: Last AUTO_INCREMENT id generated by the batch, if any.
        changed_rows: Rows whose values actually changed (UPDATE only).
        result_sets: Every row set of a multi-statement batch, in order.
    """

    sql: str
    rows: List[Row] = field(default_factory=list)
    affected_rows: int = 0
    inserted_id: Optional[int] = None
    changed_rows: int = 0
    result_sets: List[List[Row]] = field(default_factory=list)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __getitem__(self, index: int) -> Row:
        return self.rows[index]


def _format_timedelta(value: datetime.timedelta) -> str:
    """Render a TIME value the way MySQL prints it: ``[-]HH:MM:SS[.ffffff]``."""
    sign = "-" if value < datetime.timedelta(0) else ""
    span = abs(value)
    hours = span.days * 24 + span.seconds // 3600
    minutes, seconds = divmod(span.seconds % 3600, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if span.microseconds:
        text += f".{span.microseconds:06d}"
    return text


def _json_default(value: object) -> object:
    """Convert driver value types that JSON cannot represent."""
    if isinstance(value, datetime.datetime):
        if value.microsecond:
            return value.isoformat(sep=" ")
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, datetime.date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, datetime.time):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return _format_timedelta(value)
    if isinstance(value, decimal.Decimal):
        return float(value)
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return bytes(value).hex()
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class DatabaseManager:
    """Connection wrapper for one MySQL session.

    Handles connection management, escaping, query execution, CRUD statement
    building and exception translation. Every helper raises a `QueryError`
    subclass when the server rejects a statement and `DBConnectionError` when
    the session is missing or lost. Helpers documented as returning True do so
    whenever no exception was raised.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        *,
        connection_factory: Optional[ConnectionFactory] = None,
        debug_util: Optional[DebugUtil] = None,
        log_errors: bool = True,
    ) -> None:
        """Initialize a DatabaseManager. No connection is opened until `connect()`.

        Args:
            config: Connection settings.
            connection_factory: Callable accepting `pymysql.connect` keyword
                arguments. Defaults to `pymysql.connect`.
            debug_util: Optional DebugUtil instance for debug output.
            log_errors: Whether failed statements are logged.
        """
        self._config = config
        self._connection_factory: ConnectionFactory = connection_factory or cast(
            ConnectionFactory, pymysql.connect
        )
        self.debug_util = debug_util or DebugUtil()
        self._log_errors = log_errors
        self._conn: Optional[ConnectionProtocol] = None
        self._last_result: Optional[QueryResult] = None
        self._cache: Dict[Hashable, Any] = {}

    def _debug_message(self, *args: object) -> None:
        self.debug_util.debug_message(*args)

    # --- Connection lifecycle ---

    def connect(
        self,
        use_tls: Optional[bool] = None,
        tls_material: Union[str, TlsMaterial, None] = None,
    ) -> bool:
        """Open the session. Calling it again while connected is a no-op.

        Args:
            use_tls: Override `config.tls_enabled`.
            tls_material: Override `config.tls_material`; a preset name such as
                "Amazon RDS", a directory holding the PEM files, or TlsMaterial.

        Returns:
            True once connected.

        Raises:
            DBConnectionError: If the server is unreachable, the credentials are
                rejected, the connect timeout elapses or TLS material is missing.
        """
        if self._conn is not None:
            self._debug_message("Re-using database connection")
            return True

        cfg = self._config
        tls = cfg.tls_enabled if use_tls is None else use_tls
        options: Dict[str, Any] = {
            "host": cfg.host,
            "port": cfg.port,
            "user": cfg.user,
            "password": cfg.password,
            "database": cfg.database or None,
            "connect_timeout": cfg.connect_timeout_seconds,
            "charset": cfg.charset,
            "autocommit": True,
            "client_flag": CLIENT.MULTI_STATEMENTS,
            "cursorclass": pymysql.cursors.DictCursor,
        }

        try:
            if cfg.iam_auth:
                options["password"] = self._generate_iam_token()
                tls = True
            if tls:
                material = resolve_tls_material(
                    tls_material if tls_material is not None else cfg.tls_material
                )
                options["ssl"] = material.to_ssl_options()
            self._conn = self._connection_factory(**options)
        except Exception as e:
            logger.error("Unable to connect to %s:%s: %s", cfg.host, cfg.port, e)
            self._debug_message(f"Connection failed: {e}")
            raise DBConnectionError(f"Unable to connect to {cfg.host}:{cfg.port}: {e}") from e

        self._debug_message(f"Connected to {cfg.host}:{cfg.port}/{cfg.database}")
        return True

    def _generate_iam_token(self) -> str:
        """Generate an RDS IAM auth token to use as the password."""
        cfg = self._config
        rds = boto3.client("rds", region_name=cfg.aws_region)
        return cast(
            str,
            rds.generate_db_auth_token(
                DBHostname=cfg.host,
                Port=cfg.port,
                DBUsername=cfg.user,
                Region=cfg.aws_region,
            ),
        )

    def close(self) -> bool:
        """Close the session and clear the schema cache.

        Returns:
            True, also when there was no open session.

        Raises:
            DBConnectionError: If closing the connection fails.
        """
        if self._conn is None:
            self.clear_all_cache()
            return True
        try:
            self._conn.close()
        except Exception as e:
            logger.error("Error closing database connection: %s", e)
            self._debug_message(f"Error closing database connection: {e}")
            raise DBConnectionError(f"Error closing database connection: {e}") from e
        finally:
            self._conn = None
            self.clear_all_cache()
        return True

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def _require_connection(self) -> ConnectionProtocol:
        if self._conn is None:
            raise DBConnectionError("Database connection is not established")
        return self._conn

    def __enter__(self) -> "DatabaseManager":
        """Connect and return self for use in with statements."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: object,
    ) -> None:
        """Close the connection when leaving the context."""
        self.close()

    # --- Escaping and formatting ---

    def escape(self, value: object) -> str:
        """Escape a value as a SQL literal, e.g. ``'value'``.

        Uses the session's escaping rules when connected. `Literal` values pass
        through unescaped.
        """
        if isinstance(value, Literal):
            return value.sql
        if isinstance(value, Value):
            value = value.value
        if self._conn is not None:
            return self._conn.escape(value)
        return escape_value(value, self._config.charset)

    def escape_id(self, name: Union[str, Sequence[str]]) -> str:
        """Quote a database, table or column name, e.g. ```value```."""
        return escape_id(name)

    def format(self, query: str, values: Optional[Sequence[object]] = None) -> str:
        """Substitute ``??`` (identifier) and ``?`` (value) placeholders.

        Example:
            >>> db.format("SELECT * FROM ?? WHERE ?? = ?", ["users", "id", 10])
            'SELECT * FROM `users` WHERE `id` = 10'
        """
        return format_sql(query, values, escape=self.escape)

    # --- Execution ---

    def query(self, sql: str, values: Optional[Sequence[object]] = None) -> QueryResult:
        """Format ``sql`` locally and send it as text.

        Multi-statement batches separated by ``;`` are allowed.

        Returns:
            The QueryResult, which is also kept as `last_result`.
        """
        return self._run(self.format(sql, values))

    def execute(self, sql: str, values: Optional[Sequence[object]] = None) -> QueryResult:
        """Run ``sql`` through the driver's own parameter binding.

        ``??`` identifiers are quoted locally and ``?`` values are passed to
        the driver as ``%s`` parameters. The recorded SQL equals
        ``format(sql, values)``.
        """
        native, args = to_driver_placeholders(sql, values)
        return self._run(native, args)

    def _run(self, sql: str, args: Optional[Tuple[object, ...]] = None) -> QueryResult:
        conn = self._require_connection()
        cursor = conn.cursor()
        sent = sql
        try:
            if args is not None:
                sent = cursor.mogrify(sql, args)
            self._debug_message(f"Executing SQL: {sent}")
            cursor.execute(sql, args)
            result = self._collect(cursor, sent)
        except Exception as e:
            self._translate_and_raise(e, sent)
        finally:
            with contextlib.suppress(Exception):
                cursor.close()

        self._last_result = result
        return result

    @staticmethod
    def _changed_rows(cursor: CursorProtocol) -> int:
        message = getattr(getattr(cursor, "_result", None), "message", None)
        if not message:
            return 0
        if isinstance(message, (bytes, bytearray)):
            message = bytes(message).decode("utf-8", "replace")
        match = _CHANGED_ROWS_RE.search(str(message))
        return int(match.group(1)) if match else 0

    def _collect(self, cursor: CursorProtocol, sent: str) -> QueryResult:
        """Read every result set of the batch so later statement errors surface."""
        result = QueryResult(sql=sent)
        while True:
            if cursor.description:
                result.result_sets.append([dict(row) for row in cursor.fetchall()])
            else:
                result.affected_rows += max(cursor.rowcount, 0)
                result.changed_rows += self._changed_rows(cursor)
            if cursor.lastrowid:
                result.inserted_id = cursor.lastrowid
            if not cursor.nextset():
                break
        if result.result_sets:
            result.rows = result.result_sets[-1]
        return result

    @staticmethod
    def _error_details(e: Exception) -> Tuple[Optional[int], str]:
        args = getattr(e, "args", ())
        if len(args) >= 2 and isinstance(args[0], int):
            return args[0], str(args[1])
        return None, str(e)

    def _translate_and_raise(self, e: Exception, sql: str) -> NoReturn:
        """Translate PyMySQL exceptions to our custom exceptions and raise.

        Always raises; does not return.
        """
        if isinstance(e, DatabaseError):
            raise e

        errno, message = self._error_details(e)
        if self._log_errors:
            logger.error("%s, %s", message, sql)
        self._debug_message(f"Query failed: {message}")

        if isinstance(e, pymysql_err.InterfaceError) or (
            isinstance(e, pymysql_err.OperationalError) and errno in _CLIENT_ERROR_RANGE
        ):
            raise DBConnectionError(f"Lost connection to MySQL server: {message}") from e
        if errno in _TABLE_NOT_FOUND_CODES:
            raise TableNotFoundError(message, sql, errno) from e
        if errno in _SCHEMA_ERROR_CODES:
            raise SchemaError(message, sql, errno) from e
        if errno in _FOREIGN_KEY_CODES:
            raise ForeignKeyError(message, sql, errno) from e
        if errno in _CONSTRAINT_CODES:
            raise ConstraintError(message, sql, errno) from e
        if isinstance(e, pymysql_err.IntegrityError):
            raise IntegrityError(message, sql, errno) from e
        if isinstance(e, pymysql_err.DataError):
            raise DatabaseTypeError(message, sql, errno) from e

        raise QueryError(message, sql, errno) from e

    # --- Result normalization ---

    @staticmethod
    def export(data: Any) -> Any:
        """Return a plain JSON-safe copy of rows.

        Datetimes become ``YYYY-MM-DD HH:MM:SS`` strings, Decimals become
        floats and bytes become text.
        """
        if data is None:
            return None
        return json.loads(json.dumps(data, default=_json_default))

    @staticmethod
    def _export_value(value: Any) -> Any:
        if value is None or isinstance(value, (str, int, float, bool)):
            return value
        return _json_default(value)

    # --- CRUD helpers ---

    def get(self, table: str, id: object) -> Optional[Row]:
        """Get one row by ID, or None."""
        rows = self.get_by(table, {"id": id}, limit=1)
        return rows[0] if rows else None

    def get_all(self, table: str, order_by: Optional[str] = None) -> List[Row]:
        """Get every row of a table."""
        return self.get_by(table, {}, order_by=order_by)

    def get_all_count(self, table: str) -> int:
        """Count the rows of a table."""
        return self.integer(f"SELECT COUNT(id) FROM {escape_id(table)}") or 0

    def get_by(
        self,
        table: str,
        criteria: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
    ) -> List[Row]:
        """Select rows matching every criteria entry.

        Args:
            table: Table name.
            criteria: Column -> value mapping, AND-ed together. Empty means all rows.
            limit: Maximum number of rows.
            order_by: Raw ORDER BY expression, e.g. ``"id DESC"``. Not escaped.

        Returns:
            A list of plain row dicts.
        """
        sql = f"SELECT * FROM {escape_id(table)}" + build_where(criteria or {}, self.escape)
        if order_by:
            sql += f" ORDER BY {order_by}"
        if limit is not None and limit > 0:
            sql += f" LIMIT {int(limit)}"
        return cast(List[Row], self.export(self.query(sql).rows))

    def insert(self, table: str, data: Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]) -> bool:
        """Insert one row or many rows in a single batch.

        The generated id is available from `inserted_id` afterwards.

        Raises:
            QueryBuildError: If there is nothing to insert.
        """
        rows: List[Mapping[str, Any]] = [data] if isinstance(data, Mapping) else list(data)
        if not rows:
            raise QueryBuildError("Nothing to insert")
        statements = [build_insert(table, row, self.escape) for row in rows]
        self.query("; ".join(statements))
        return True

    def _require_criteria(self, operation: str, criteria: Mapping[str, Any]) -> None:
        if not criteria:
            raise QueryBuildError(f"{operation} requires at least one criteria column")

    def update(self, table: str, id: object, values: Mapping[str, Any]) -> bool:
        """Update one row by ID."""
        return self.update_by(table, {"id": id}, values)

    def update_by(self, table: str, criteria: Mapping[str, Any], values: Mapping[str, Any]) -> bool:
        """Update rows matching every criteria entry.

        Raises:
            QueryBuildError: If ``criteria`` or ``values`` is empty.
        """
        self._require_criteria("update_by", criteria)
        if not values:
            raise QueryBuildError("update_by requires at least one value to set")
        sql = (
            f"UPDATE {escape_id(table)} SET {build_assignments(values, self.escape)}"
            + build_where(criteria, self.escape)
        )
        self.query(sql)
        return True

    def delete(self, table: str, id: object) -> bool:
        """Delete one row by ID."""
        return self.delete_by(table, {"id": id})

    def delete_by(self, table: str, criteria: Mapping[str, Any]) -> bool:
        """Delete rows matching every criteria entry.

        Raises:
            QueryBuildError: If ``criteria`` is empty.
        """
        self._require_criteria("delete_by", criteria)
        self.query(f"DELETE FROM {escape_id(table)}" + build_where(criteria, self.escape))
        return True

    def exists(self, table: str, id: object) -> bool:
        """Whether a row with this ID exists."""
        return self.exists_by(table, {"id": id})

    def exists_by(
        self, table: str, criteria: Mapping[str, Any], exclude_id: Optional[object] = None
    ) -> bool:
        """Whether any row matches every criteria entry, optionally ignoring one ID."""
        self._require_criteria("exists_by", criteria)
        sql = f"SELECT COUNT(id) FROM {escape_id(table)}" + build_where(criteria, self.escape)
        if exclude_id is not None:
            sql += f" AND `id` != {self.escape(exclude_id)}"
        return (self.integer(sql) or 0) > 0

    # --- Result shaping ---

    def array(self, sql: str, column: Optional[str] = None) -> List[Any]:
        """Return one column of every row, the first column when not named."""
        rows = cast(List[Row], self.export(self.query(sql).rows))
        if column:
            return [row[column] for row in rows]
        return [next(iter(row.values())) for row in rows if row]

    def kv_object(self, sql: str, key: str, value: str) -> Dict[Any, Any]:
        """Map ``key`` column to ``value`` column. Later duplicate keys win."""
        rows = cast(List[Row], self.export(self.query(sql).rows))
        return {row[key]: row[value] for row in rows}

    def row(self, sql: str) -> Optional[Row]:
        """Return the first row, or None."""
        rows = self.query(sql).rows
        return cast(Row, self.export(rows[0])) if rows else None

    def scalar(self, sql: str) -> Any:
        """Return the first column of the first row, or None."""
        rows = self.query(sql).rows
        if not rows or not rows[0]:
            return None
        return self._export_value(next(iter(rows[0].values())))

    def boolean(self, sql: str) -> Optional[bool]:
        """Read a scalar as a boolean.

        ``true/yes/y/1`` map to True and ``false/no/n/0`` to False, ignoring
        case. Anything else, including NULL, gives None.
        """
        value = self.scalar(sql)
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            if value == 1:
                return True
            if value == 0:
                return False
            return None
        token = str(value).strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
        return None

    def integer(self, sql: str) -> Optional[int]:
        """Read a scalar as an int. NULL and empty string give None, not 0."""
        value = self.scalar(sql)
        if value is None or value == "":
            return None
        try:
            return int(decimal.Decimal(str(value)))
        except (decimal.InvalidOperation, ValueError, OverflowError) as e:
            raise DatabaseTypeError(f"Not an integer: {value!r}", sql) from e

    def decimal(self, sql: str, places: int = 2) -> Optional[float]:
        """Read a scalar as a float rounded to ``places``. NULL and '' give None."""
        value = self.scalar(sql)
        if value is None or value == "":
            return None
        try:
            return round(float(value), places)
        except (TypeError, ValueError) as e:
            raise DatabaseTypeError(f"Not a number: {value!r}", sql) from e

    # --- Transactions ---

    def transaction(self, statements: Union[str, Iterable[str]], strict: bool = False) -> bool:
        """Run statements in one transaction.

        Args:
            statements: One SQL string (may hold several statements) or a list.
            strict: Re-raise the failing statement's error after rolling back.

        Returns:
            True when committed. False when a statement failed and the
            transaction was rolled back.

        Raises:
            QueryBuildError: If there are no statements.
            QueryError: When ``strict`` is set and a statement failed.

        Rollback failures are logged and never raised.
        """
        batch = split_statements(statements)
        if not batch:
            raise QueryBuildError("Nothing to run in transaction")

        conn = self._require_connection()
        try:
            conn.begin()
        except Exception as e:
            self._translate_and_raise(e, "BEGIN")

        try:
            for statement in batch:
                self.query(statement)
            try:
                conn.commit()
            except Exception as e:
                self._translate_and_raise(e, "COMMIT")
        except DatabaseError as e:
            self._rollback()
            logger.error("Transaction rolled back: %s", e)
            if strict:
                raise
            return False
        return True

    def _rollback(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.rollback()
            self._debug_message("Transaction rolled back")
        except Exception as rollback_exc:
            logger.error("Rollback failed: %s", rollback_exc)
            self._debug_message(f"Rollback failed: {rollback_exc}")

    # --- DDL helpers ---

    def table_exists(self, table: str) -> bool:
        """Check if a table exists in the current database."""
        sql = self.format(
            "SELECT 1 FROM INFORMATION_SCHEMA.TABLES WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ?",
            [self._schema_name(), table],
        )
        return self.row(sql) is not None

    def list_tables(self) -> List[str]:
        """Return the names of all base tables in the current database."""
        sql = self.format(
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = ? AND TABLE_TYPE = 'BASE TABLE' ORDER BY TABLE_NAME",
            [self._schema_name()],
        )
        return [str(name) for name in self.array(sql)]

    def duplicate_table(self, source: str, target: str) -> bool:
        """Create ``target`` with the structure and rows of ``source``."""
        src, dst = escape_id(source), escape_id(target)
        self.query(f"CREATE TABLE {dst} LIKE {src}; INSERT INTO {dst} SELECT * FROM {src}")
        return True

    def truncate(self, table: str) -> bool:
        """Remove every row from a table."""
        self.query(f"TRUNCATE TABLE {escape_id(table)}")
        return True

    def drop(self, table: str) -> bool:
        """Drop a table."""
        self.query(f"DROP TABLE {escape_id(table)}")
        self.clear_table_cache(table)
        return True

    # --- Session variables ---

    def _check_env_var_name(self, name: str) -> None:
        if not _ENV_VAR_NAME_RE.match(name):
            raise QueryBuildError(f"Invalid session variable name: {name!r}")

    def set_env_var(self, name: str, value: object) -> bool:
        """Set a session variable (``SET @name = value``)."""
        self._check_env_var_name(name)
        self.query(f"SET @{name} = {self.escape(value)}")
        return True

    def get_env_var(self, name: str) -> Any:
        """Read a session variable (``SELECT @name``)."""
        self._check_env_var_name(name)
        return self.scalar(f"SELECT @{name}")

    # --- Schema introspection ---

    def _schema_name(self) -> object:
        return self._config.database or Literal("DATABASE()")

    @staticmethod
    def _ignore_columns(ignore: Union[str, Iterable[str]]) -> Tuple[str, ...]:
        """Normalize an ignore argument; a bare string names one column."""
        if isinstance(ignore, str):
            return (ignore,)
        return tuple(sorted(set(ignore)))

    @classmethod
    def schema_cache_key(
        cls, kind: SchemaKind, table: str, ignore: Union[str, Iterable[str]] = ()
    ) -> Tuple[str, str, Tuple[str, ...]]:
        """Cache key for one kind of metadata of one table and ignore set."""
        return (kind.value, table, cls._ignore_columns(ignore))

    def _columns_query(self, select: str, table: str, ignore: Union[str, Sequence[str]], order_by: str) -> str:
        ignore = self._ignore_columns(ignore)
        sql = self.format(
            f"SELECT {select} FROM INFORMATION_SCHEMA.COLUMNS WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ?",
            [self._schema_name(), table],
        )
        if ignore:
            sql += " AND COLUMN_NAME NOT IN (" + ", ".join(self.escape(c) for c in ignore) + ")"
        return sql + f" ORDER BY {order_by} ASC"

    def get_table_columns(self, table: str, ignore: Union[str, Sequence[str]] = ()) -> List[str]:
        """Column names of a table in ordinal order, minus ``ignore``. Cached."""
        key = self.schema_cache_key(SchemaKind.COLUMNS, table, ignore)
        if key not in self._cache:
            sql = self._columns_query("COLUMN_NAME", table, ignore, "ORDINAL_POSITION")
            self.save_cache(key, self.array(sql, "COLUMN_NAME"))
        return list(self._cache[key])

    def get_table_column_default_values(self, table: str, ignore: Union[str, Sequence[str]] = ()) -> Dict[str, Any]:
        """Column name -> COLUMN_DEFAULT, ordered by column name. Cached."""
        key = self.schema_cache_key(SchemaKind.DEFAULT_VALUES, table, ignore)
        if key not in self._cache:
            sql = self._columns_query("COLUMN_NAME, COLUMN_DEFAULT", table, ignore, "COLUMN_NAME")
            self.save_cache(key, self.kv_object(sql, "COLUMN_NAME", "COLUMN_DEFAULT"))
        return dict(self._cache[key])

    def get_table_column_data_types(self, table: str, ignore: Union[str, Sequence[str]] = ()) -> Dict[str, str]:
        """Column name -> COLUMN_TYPE (e.g. ``int(11) unsigned``). Cached."""
        key = self.schema_cache_key(SchemaKind.DATA_TYPES, table, ignore)
        if key not in self._cache:
            sql = self._columns_query("COLUMN_NAME, COLUMN_TYPE", table, ignore, "COLUMN_NAME")
            self.save_cache(key, self.kv_object(sql, "COLUMN_NAME", "COLUMN_TYPE"))
        return dict(self._cache[key])

    def save_cache(self, cache_id: Hashable, value: Any) -> None:
        """Store a value under ``cache_id``, replacing any previous entry."""
        self._cache[cache_id] = value

    def clear_cache(self, cache_id: Hashable) -> None:
        """Drop one cache entry. Unknown ids are ignored."""
        self._cache.pop(cache_id, None)

    def clear_table_cache(self, table: str) -> None:
        """Drop every cached metadata entry for one table."""
        for key in [k for k in self._cache if isinstance(k, tuple) and len(k) == 3 and k[1] == table]:
            del self._cache[key]

    def clear_all_cache(self) -> None:
        """Drop every cache entry. Also done by `close()`."""
        self._cache.clear()

    # --- Accessors ---

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def db_host(self) -> str:
        return self._config.host

    @property
    def db_port(self) -> int:
        return self._config.port

    @property
    def db_user(self) -> str:
        return self._config.user

    @property
    def db_password(self) -> str:
        return self._config.password

    @property
    def db_name(self) -> str:
        return self._config.database

    @property
    def connect_timeout(self) -> int:
        """Connect timeout in milliseconds."""
        return self._config.connect_timeout_ms

    @property
    def log_errors(self) -> bool:
        return self._log_errors

    @log_errors.setter
    def log_errors(self, value: bool) -> None:
        self._log_errors = value

    @property
    def last_result(self) -> Optional[QueryResult]:
        """Result of the most recent round trip. Overwritten by every call."""
        return self._last_result

    @property
    def last_query(self) -> Optional[str]:
        return self._last_result.sql if self._last_result is not None else None

    @property
    def inserted_id(self) -> Optional[int]:
        return self._last_result.inserted_id if self._last_result is not None else None

    @property
    def affected_rows(self) -> Optional[int]:
        return self._last_result.affected_rows if self._last_result is not None else None

    @property
    def changed_rows(self) -> Optional[int]:
        return self._last_result.changed_rows if self._last_result is not None else None
