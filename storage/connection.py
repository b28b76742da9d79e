"""
Connection session owning the single MySQL connection of an adapter.
"""
import logging
import threading
from enum import Enum
from typing import Any, Optional, Sequence, Tuple

import pymysql
from pymysql.constants import CR, ER

from storage.exceptions import (
    ConfigurationError,
    LostConnectionError,
    MissingTableError,
    StorageEngineError,
)
from utils.models import ExecutionResult

logger = logging.getLogger(__name__)

# Client error codes pymysql raises when the server connection drops
LOST_CONNECTION_CODES = {CR.CR_SERVER_GONE_ERROR, CR.CR_SERVER_LOST}


class SessionState(Enum):
    """Connection lifecycle states."""
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    LOST = "lost"


class ConnectionSession:
    """Lazily connected, self-healing wrapper around one pymysql connection.

    The connection is opened on first use. When the server drops it, the
    failing call raises LostConnectionError and the handle is discarded, so
    the next call opens a fresh connection. The failed statement is never
    replayed. A transaction open when the connection drops is gone with it:
    statements are refused until rollback() or commit() acknowledges the
    loss, and that commit() raises LostConnectionError.
    """

    def __init__(self, host: str, user: str, password: str, database: str,
                 port: int = 3306, charset: str = "utf8mb4", connect_timeout: int = 10):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.charset = charset
        self.connect_timeout = connect_timeout

        self._connection = None
        self._state = SessionState.UNCONNECTED
        self._in_transaction = False
        self._transaction_lost = False
        # Bumped on every physical connect
        self._generation = 0
        # pymysql does not queue commands; statements on the shared
        # connection must not interleave
        self._lock = threading.RLock()

    @property
    def key(self) -> Tuple[str, str, str, str]:
        return (self.host, self.user, self.password, self.database)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @property
    def transaction_lost(self) -> bool:
        return self._transaction_lost

    def _connect(self):
        self._connection = pymysql.connect(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            charset=self.charset,
            connect_timeout=self.connect_timeout,
            autocommit=True,
            cursorclass=pymysql.cursors.DictCursor
        )
        if self._state is SessionState.LOST:
            logger.info(f"Reconnected to MySQL at {self.host}:{self.port}/{self.database}")
        else:
            logger.info(f"Connected to MySQL at {self.host}:{self.port}/{self.database}")
        self._state = SessionState.CONNECTED
        self._generation += 1

    def get_connection(self):
        """Get or create the database connection."""
        with self._lock:
            if self._state is SessionState.CONNECTED and not self._connection.open:
                logger.warning("MySQL connection found closed, reconnecting")
                self._mark_lost()
            if self._state is not SessionState.CONNECTED:
                self._connect()
            return self._connection

    def _mark_lost(self):
        connection, self._connection = self._connection, None
        self._state = SessionState.LOST
        if self._in_transaction:
            logger.warning("Open transaction discarded with the lost connection")
            self._transaction_lost = True
        self._in_transaction = False
        if connection is not None and connection.open:
            try:
                connection.close()
            except pymysql.err.Error as e:
                logger.debug(f"Ignoring error while discarding lost connection: {e}")

    def _wrap_error(self, error: Exception, sql: Optional[str], params: Sequence[Any]) -> StorageEngineError:
        code = error.args[0] if error.args and isinstance(error.args[0], int) else None
        message = str(error.args[1]) if len(error.args) > 1 else str(error)

        if isinstance(error, pymysql.err.InterfaceError) or (
                isinstance(error, pymysql.err.OperationalError) and code in LOST_CONNECTION_CODES):
            logger.warning(f"Lost connection to MySQL ({code}): {message}")
            self._mark_lost()
            return LostConnectionError(message, sql, params, code)

        logger.error(f"MySQL error {code}: {message} while executing: {sql}")
        if code == ER.NO_SUCH_TABLE:
            return MissingTableError(message, sql, params, code)
        return StorageEngineError(message, sql, params, code)

    def _check_usable(self, sql: Optional[str], params: Sequence[Any], generation: Optional[int]):
        if self._transaction_lost:
            raise LostConnectionError(
                "Transaction was lost with the connection; roll back before issuing statements",
                sql, params)
        if generation is None:
            return
        if self._state is SessionState.CONNECTED and not self._connection.open:
            logger.warning("MySQL connection found closed during a batch")
            self._mark_lost()
        if self._state is not SessionState.CONNECTED or self._generation != generation:
            raise LostConnectionError("Connection was lost earlier in this batch; statement not sent",
                                      sql, params)

    def open(self) -> int:
        """Ensure the connection is open.

        Returns:
            Generation of the open connection, for pinning a batch of
            statements to it with execute()
        """
        with self._lock:
            self._check_usable(None, (), None)
            try:
                self.get_connection()
            except pymysql.err.Error as e:
                raise self._wrap_error(e, None, ()) from e
            return self._generation

    def execute(self, sql: str, params: Sequence[Any] = (),
                generation: Optional[int] = None) -> ExecutionResult:
        """Execute one statement on the session connection.

        Args:
            sql: SQL text using %s placeholders
            params: Bind parameters
            generation: Connection generation from open(); when given, the
                statement is refused instead of reconnecting if that
                connection is gone

        Returns:
            ExecutionResult with fetched rows and write counters

        Raises:
            LostConnectionError: Connection dropped; the next call reconnects
            StorageEngineError: Any other failure reported by MySQL
        """
        params = tuple(params)
        with self._lock:
            self._check_usable(sql, params, generation)
            try:
                conn = self.get_connection()
                cursor = conn.cursor()
                try:
                    logger.debug(f"Executing: {sql} {list(params)}")
                    cursor.execute(sql, params)
                    description = cursor.description or ()
                    rows = list(cursor.fetchall()) if description else []
                    return ExecutionResult(
                        rows=rows,
                        fields=[column[0] for column in description],
                        affected_rows=cursor.rowcount,
                        last_insert_id=cursor.lastrowid
                    )
                finally:
                    cursor.close()
            except pymysql.err.Error as e:
                raise self._wrap_error(e, sql, params) from e

    def _run_transaction_command(self, name: str):
        with self._lock:
            try:
                conn = self.get_connection()
                logger.debug(name)
                getattr(conn, name.lower())()
            except pymysql.err.Error as e:
                raise self._wrap_error(e, name, ()) from e

    def begin(self):
        """Open the transaction scope of this connection."""
        with self._lock:
            if self._in_transaction:
                raise ConfigurationError("A transaction is already open on this connection")
            if self._transaction_lost:
                raise ConfigurationError("The previous transaction was lost; roll it back first")
            self._run_transaction_command("BEGIN")
            self._in_transaction = True

    def commit(self):
        """Commit the open transaction.

        Raises:
            LostConnectionError: The connection dropped inside the
                transaction, so the server discarded it
        """
        with self._lock:
            if self._transaction_lost:
                self._transaction_lost = False
                raise LostConnectionError("Transaction was lost with the connection; nothing was committed",
                                          "COMMIT")
            try:
                self._run_transaction_command("COMMIT")
            finally:
                self._in_transaction = False

    def rollback(self):
        """Roll back the open transaction."""
        with self._lock:
            if self._transaction_lost:
                # the server already discarded it with the old connection
                logger.info("Rollback acknowledged for transaction lost with the connection")
                self._transaction_lost = False
                return
            try:
                self._run_transaction_command("ROLLBACK")
            finally:
                self._in_transaction = False

    def end(self):
        """Close the connection and reset the session."""
        with self._lock:
            connection = self._connection
            try:
                if connection is not None and connection.open:
                    connection.close()
                    logger.info(f"Closed MySQL connection to {self.host}:{self.port}/{self.database}")
            except pymysql.err.Error as e:
                raise self._wrap_error(e, None, ()) from e
            finally:
                self._connection = None
                self._state = SessionState.UNCONNECTED
                self._in_transaction = False
                self._transaction_lost = False
