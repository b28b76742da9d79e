"""
SQL statement assembly, one builder per adapter operation.
"""
from typing import Any, Callable, List, Mapping, NamedTuple, Optional, Tuple

from storage.criteria import compile_criteria, quote_identifier
from storage.exceptions import ConfigurationError
from utils.models import Pagination, Query

# Row cap applied when an offset is requested without a length
SAFE_LIMIT = 1000


class Statement(NamedTuple):
    """SQL text with its bind parameters."""
    sql: str
    params: Tuple[Any, ...] = ()


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"Pagination {name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Pagination {name} must be an integer, got {value!r}") from None


def where_clause(criteria: Optional[Mapping[str, Any]],
                 encode: Optional[Callable[[Any], Any]] = None) -> Tuple[Optional[str], List[Any]]:
    predicate, params = compile_criteria(criteria, encode)
    if predicate is None:
        return None, []
    return f"WHERE {predicate}", params


def order_by_clause(sorts: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not sorts:
        return None
    directions = []
    for field, direction in sorts.items():
        ascending = direction > 0 if isinstance(direction, (int, float)) else bool(direction)
        directions.append(f"{quote_identifier(field)} {'ASC' if ascending else 'DESC'}")
    return "ORDER BY " + ", ".join(directions)


def pagination_clause(pagination: Pagination) -> Optional[str]:
    """Render LIMIT/OFFSET for a pagination window.

    A negative length is unbounded unless an offset is given, in which case
    the window is capped at SAFE_LIMIT rows.
    """
    length = _as_int(pagination.length, "length")
    offset = _as_int(pagination.offset, "offset")

    if length < 0:
        if offset <= 0:
            return None
        length = SAFE_LIMIT

    clause = f"LIMIT {length}"
    if offset > 0:
        clause += f" OFFSET {offset}"
    return clause


def _join(parts: List[Optional[str]]) -> str:
    return " ".join(part for part in parts if part)


def build_select(query: Query, encode: Optional[Callable[[Any], Any]] = None) -> Statement:
    where, params = where_clause(query.criteria, encode)
    sql = _join([
        f"SELECT * FROM {quote_identifier(query.table)}",
        where,
        order_by_clause(query.sorts),
        pagination_clause(query.pagination),
    ])
    return Statement(sql, tuple(params))


def resolve_insert_fields(query: Query) -> List[str]:
    """Field list for an insert: declared schema fields, or else the ordered
    union of keys across the pending rows."""
    if query.schema.fields:
        return query.schema.field_names

    names: List[str] = []
    for row in query.inserts:
        for name in row:
            if name not in names:
                names.append(name)
    return names


def build_insert(table: str, fields: List[str], row: Mapping[str, Any]) -> Statement:
    """Build the INSERT for one row; fields the row lacks are left out."""
    present = [name for name in fields if name in row]
    columns = ", ".join(quote_identifier(name) for name in present)
    placeholders = ", ".join("%s" for _ in present)
    sql = f"INSERT INTO {quote_identifier(table)} ({columns}) VALUES ({placeholders})"
    return Statement(sql, tuple(row[name] for name in present))


def build_update(query: Query, sets: Optional[Mapping[str, Any]] = None,
                 encode: Optional[Callable[[Any], Any]] = None) -> Statement:
    """Build an UPDATE; set values are bound before the WHERE values.

    Args:
        query: Query descriptor
        sets: Already-encoded set-assignments, defaults to query.sets
        encode: Hook for criteria values
    """
    sets = query.sets if sets is None else sets
    if not sets:
        raise ConfigurationError(f"Update on '{query.table}' has no set-assignments")

    assignments = ", ".join(f"{quote_identifier(name)} = %s" for name in sets)
    where, where_params = where_clause(query.criteria, encode)
    sql = _join([f"UPDATE {quote_identifier(query.table)} SET {assignments}", where])
    return Statement(sql, tuple(sets.values()) + tuple(where_params))


def build_delete(query: Query, encode: Optional[Callable[[Any], Any]] = None) -> Statement:
    where, params = where_clause(query.criteria, encode)
    sql = _join([f"DELETE FROM {quote_identifier(query.table)}", where])
    return Statement(sql, tuple(params))


def build_count(query: Query, use_pagination: bool = False,
                encode: Optional[Callable[[Any], Any]] = None) -> Statement:
    where, params = where_clause(query.criteria, encode)
    sql = _join([
        f"SELECT count(*) AS count FROM {quote_identifier(query.table)}",
        where,
        pagination_clause(query.pagination) if use_pagination else None,
    ])
    return Statement(sql, tuple(params))


def build_truncate(table: str) -> Statement:
    return Statement(f"TRUNCATE TABLE {quote_identifier(table)}")


def build_drop(table: str) -> Statement:
    return Statement(f"DROP TABLE {quote_identifier(table)}")
