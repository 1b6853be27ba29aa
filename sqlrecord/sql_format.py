"""Escaping and placeholder formatting for MySQL statements.

The helpers here build SQL text without a live connection. `DatabaseManager`
uses them with the connection's own escaper once a session is open, so the
text recorded as the last query is byte-for-byte what the driver sends.

Placeholder rules:
    ``??`` consumes the next value and quotes it as an identifier.
    ``?`` consumes the next value and escapes it as a literal.
    Runs of three or more question marks are left untouched, and once the
    values are used up the rest of the template is copied as is.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pymysql import converters

DEFAULT_CHARSET = "utf8mb4"

_PLACEHOLDER_RE = re.compile(r"\?+")

Escaper = Callable[[object], str]


@dataclass(frozen=True)
class Literal:
    """A SQL fragment that is inserted verbatim, without escaping.

    Use it for server-side expressions such as ``ENCRYPT('secret', 'salt')``
    or ``NOW()`` in criteria and value mappings. Never wrap user input.
    """

    sql: str

    def __str__(self) -> str:
        return self.sql


@dataclass(frozen=True)
class Value:
    """An explicitly escaped value. Plain values are treated the same way."""

    value: object


def escape_value(value: object, charset: str = DEFAULT_CHARSET) -> str:
    """Escape a Python value as a MySQL literal.

    Args:
        value: Value to escape. ``Literal`` passes through, ``Value`` unwraps.
        charset: Connection character set used for string escaping.

    Returns:
        The SQL literal text, e.g. ``'value'``, ``10`` or ``NULL``.
    """
    if isinstance(value, Literal):
        return value.sql
    if isinstance(value, Value):
        value = value.value
    return converters.escape_item(value, charset)


def escape_id(name: Union[str, Sequence[str]], forbid_qualified: bool = False) -> str:
    """Quote an identifier (database, table or column name) with backticks.

    Dotted names are quoted per part (``db.table`` -> ```db`.`table```) unless
    ``forbid_qualified`` is set. A list of names becomes a comma separated list.
    """
    if isinstance(name, (list, tuple)):
        return ", ".join(escape_id(part, forbid_qualified) for part in name)

    text = str(name)
    if forbid_qualified:
        return "`" + text.replace("`", "``") + "`"

    parts = []
    for part in text.split("."):
        if part == "*":
            parts.append(part)
        else:
            parts.append("`" + part.replace("`", "``") + "`")
    return ".".join(parts)


def _as_values(values: Optional[Union[Sequence[object], object]]) -> List[object]:
    if values is None:
        return []
    if isinstance(values, (list, tuple)):
        return list(values)
    return [values]


def format_sql(
    template: str,
    values: Optional[Union[Sequence[object], object]] = None,
    escape: Escaper = escape_value,
) -> str:
    """Substitute ``??`` and ``?`` placeholders positionally.

    Example:
        >>> format_sql("SELECT * FROM ?? WHERE ?? = ?", ["users", "id", 10])
        'SELECT * FROM `users` WHERE `id` = 10'
    """
    params = _as_values(values)
    if not params:
        return template

    out: List[str] = []
    chunk_start = 0
    index = 0
    for match in _PLACEHOLDER_RE.finditer(template):
        if index >= len(params):
            break
        marker = match.group(0)
        if len(marker) > 2:
            continue
        value = params[index]
        rendered = escape_id(value) if len(marker) == 2 else escape(value)  # type: ignore[arg-type]
        out.append(template[chunk_start : match.start()])
        out.append(rendered)
        chunk_start = match.end()
        index += 1

    out.append(template[chunk_start:])
    return "".join(out)


def to_driver_placeholders(
    template: str, values: Optional[Union[Sequence[object], object]] = None
) -> Tuple[str, Optional[Tuple[object, ...]]]:
    """Convert a ``?``/``??`` template to the driver's ``%s`` paramstyle.

    Identifiers are quoted in place, value placeholders become ``%s`` and their
    values are returned for the driver to bind. Literal ``%`` signs are doubled
    only when there is something to bind, since PyMySQL skips interpolation
    when ``args`` is None.

    Returns:
        (native_sql, args) where args is None when nothing is bound.
    """
    params = _as_values(values)
    chunks: List[Tuple[str, bool]] = []  # (text, is_bind_marker)
    args: List[object] = []

    chunk_start = 0
    index = 0
    for match in _PLACEHOLDER_RE.finditer(template):
        if index >= len(params):
            break
        marker = match.group(0)
        if len(marker) > 2:
            continue
        chunks.append((template[chunk_start : match.start()], False))
        value = params[index]
        if len(marker) == 2:
            chunks.append((escape_id(value), False))  # type: ignore[arg-type]
        elif isinstance(value, Literal):
            chunks.append((value.sql, False))
        else:
            chunks.append(("%s", True))
            args.append(value.value if isinstance(value, Value) else value)
        chunk_start = match.end()
        index += 1
    chunks.append((template[chunk_start:], False))

    if not args:
        return "".join(text for text, _ in chunks), None
    native = "".join(text if is_marker else text.replace("%", "%%") for text, is_marker in chunks)
    return native, tuple(args)


def render_value(value: object, escape: Escaper) -> str:
    """Render a criteria/value entry: ``Literal`` verbatim, anything else escaped."""
    if isinstance(value, Literal):
        return value.sql
    if isinstance(value, Value):
        return escape(value.value)
    return escape(value)


def build_predicates(criteria: Mapping[str, Any], escape: Escaper) -> List[str]:
    """Return one ```col` = value`` predicate per criteria key, in mapping order."""
    return [f"{escape_id(key)} = {render_value(value, escape)}" for key, value in criteria.items()]


def build_where(criteria: Mapping[str, Any], escape: Escaper) -> str:
    """Return `` WHERE a = 1 AND b = 2`` or an empty string for empty criteria."""
    predicates = build_predicates(criteria, escape)
    if not predicates:
        return ""
    return " WHERE " + " AND ".join(predicates)


def build_assignments(values: Mapping[str, Any], escape: Escaper) -> str:
    """Return ```a` = 1, `b` = 2`` for an UPDATE ... SET clause."""
    return ", ".join(build_predicates(values, escape))


def build_insert(table: str, row: Mapping[str, Any], escape: Escaper) -> str:
    """Return a single-row ``INSERT INTO`` statement."""
    columns = ", ".join(escape_id(key) for key in row)
    rendered = ", ".join(render_value(value, escape) for value in row.values())
    return f"INSERT INTO {escape_id(table)} ({columns}) VALUES ({rendered})"


def split_statements(statements: Union[str, Iterable[str]]) -> List[str]:
    """Normalize a statement or list of statements to a list, dropping blanks."""
    if isinstance(statements, str):
        items: Iterable[str] = [statements]
    else:
        items = statements
    return [item for item in (s.strip() for s in items) if item]
