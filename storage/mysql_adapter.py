"""
MySQL adapter invoked by the ORM session layer.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Sequence

from config.settings import config
from storage import codec
from storage.clauses import (
    build_count,
    build_delete,
    build_drop,
    build_insert,
    build_select,
    build_truncate,
    build_update,
    resolve_insert_fields,
)
from storage.connection import ConnectionSession
from storage.exceptions import ConfigurationError, DecodeError
from utils.models import InsertResult, Query

logger = logging.getLogger(__name__)

RowCallback = Callable[[Dict[str, Any]], Any]


class MySQLAdapter:
    """MySQL adapter for ORM query descriptors."""

    OPERATIONS = ("insert", "load", "update", "delete", "count", "truncate", "drop")

    def __init__(self, db_config=None, host: Optional[str] = None, port: Optional[int] = None,
                 user: Optional[str] = None, password: Optional[str] = None,
                 database: Optional[str] = None, insert_workers: Optional[int] = None):
        """Initialize MySQL adapter.

        Args:
            db_config: Database configuration, uses global config if None
            host, port, user, password, database: Override single settings
            insert_workers: Thread pool size for multi-row inserts
        """
        self.db_config = db_config or config.database_config
        self.insert_workers = insert_workers or config.adapter_config.insert_workers
        self.session = ConnectionSession(
            host=host or self.db_config.host,
            port=port or self.db_config.port,
            user=user or self.db_config.username,
            password=self.db_config.password if password is None else password,
            database=database or self.db_config.database,
            charset=self.db_config.charset,
            connect_timeout=self.db_config.connection_timeout
        )

    def _insert_row(self, query: Query, fields: List[str], row, generation: int) -> Dict[str, Any]:
        values = codec.encode_row(query.schema, row)
        statement = build_insert(query.table, fields, values)
        result = self.session.execute(statement.sql, statement.params, generation=generation)

        inserted = dict(row)
        inserted[query.schema.id_field] = result.last_insert_id
        return {"row": inserted, "affected": result.affected_rows}

    def insert(self, query: Query, callback: Optional[RowCallback] = None) -> InsertResult:
        """Insert the pending rows of a query.

        Each row is sent as its own statement; all statements are dispatched
        at once and awaited together. Every statement of the batch is pinned
        to the connection open when the batch starts, so a dropped
        connection fails the remaining rows instead of reconnecting.

        Args:
            query: Query with pending insert rows
            callback: Called once per inserted row, after every row settled

        Returns:
            InsertResult with the summed affected count and new rows carrying
            the assigned identity, in pending-row order
        """
        if not query.inserts:
            return InsertResult(affected=0, rows=())

        fields = resolve_insert_fields(query)
        generation = self.session.open()
        outcomes: List[Optional[Dict[str, Any]]] = [None] * len(query.inserts)
        first_error = None

        workers = max(1, min(self.insert_workers, len(query.inserts)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._insert_row, query, fields, row, generation): index
                for index, row in enumerate(query.inserts)
            }
            for future in as_completed(futures):
                try:
                    outcomes[futures[future]] = future.result()
                except Exception as e:
                    # keep draining so every row has settled before raising
                    if first_error is None:
                        first_error = e

        if callback is not None:
            for outcome in outcomes:
                if outcome is None:
                    continue
                try:
                    callback(outcome["row"])
                except Exception as e:
                    logger.error(f"Insert callback failed for {query.table}: {e}")
                    if first_error is None:
                        first_error = e

        if first_error is not None:
            raise first_error

        affected = sum(outcome["affected"] for outcome in outcomes)
        logger.debug(f"Inserted {affected} rows into {query.table}")
        return InsertResult(affected=affected, rows=tuple(outcome["row"] for outcome in outcomes))

    def load(self, query: Query, callback: Optional[RowCallback] = None) -> List[Dict[str, Any]]:
        """Load rows matching a query.

        A row whose stored value cannot be decoded fails the whole load; no
        partial result is returned.

        Args:
            query: Query descriptor
            callback: Called for each decoded row

        Returns:
            Decoded rows in the order returned by MySQL

        Raises:
            DecodeError: A structured field holds a malformed value
        """
        statement = build_select(query, codec.encode)
        result = self.session.execute(statement.sql, statement.params)

        rows = []
        for index, raw in enumerate(result.rows):
            try:
                row = codec.decode_row(query.schema, raw)
            except DecodeError as e:
                logger.error(f"Failed to decode row {index} of {query.table}: {e}")
                raise DecodeError(f"Row {index} of '{query.table}': {e}",
                                  field=e.field, kind=e.kind, value=e.value) from e
            if callback is not None:
                callback(row)
            rows.append(row)
        return rows

    def update(self, query: Query) -> int:
        """Apply the query's set-assignments to matching rows.

        Returns:
            Number of affected rows
        """
        sets = codec.encode_row(query.schema, query.sets)
        statement = build_update(query, sets, codec.encode)
        result = self.session.execute(statement.sql, statement.params)
        return result.affected_rows

    def delete(self, query: Query) -> None:
        """Delete rows matching the query."""
        statement = build_delete(query, codec.encode)
        self.session.execute(statement.sql, statement.params)

    def count(self, query: Query, use_pagination: bool = False) -> int:
        """Count rows matching the query.

        Args:
            query: Query descriptor
            use_pagination: Apply the query's LIMIT/OFFSET to the count
        """
        statement = build_count(query, use_pagination, codec.encode)
        result = self.session.execute(statement.sql, statement.params)
        if not result.rows:
            return 0
        return int(result.rows[0]["count"])

    def truncate(self, query: Query) -> None:
        """Remove every row of the query's table."""
        statement = build_truncate(query.table)
        self.session.execute(statement.sql, statement.params)

    def drop(self, query: Query) -> None:
        """Drop the query's table."""
        statement = build_drop(query.table)
        self.session.execute(statement.sql, statement.params)

    def run(self, operation: str, query: Query, **kwargs) -> Any:
        """Dispatch an operation by name.

        Raises:
            ConfigurationError: Operation is not supported
        """
        if operation not in self.OPERATIONS:
            raise ConfigurationError(
                f"Unsupported operation '{operation}' (supported: {', '.join(self.OPERATIONS)})"
            )
        return getattr(self, operation)(query, **kwargs)

    def execute_query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Execute a raw SQL statement and return its rows.

        Args:
            sql: SQL text with %s placeholders
            params: Bind parameters

        Returns:
            List of result dictionaries
        """
        return self.session.execute(sql, params).rows

    def begin(self):
        """Begin a transaction on the adapter connection."""
        self.session.begin()

    def commit(self):
        """Commit the current transaction."""
        self.session.commit()

    def rollback(self):
        """Roll back the current transaction."""
        self.session.rollback()

    def end(self):
        """Terminate the database connection."""
        self.session.end()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.end()
