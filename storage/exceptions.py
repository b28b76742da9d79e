"""
Exceptions raised by the MySQL adapter.
"""
from typing import Any, Optional, Sequence


class AdapterError(Exception):
    """Base exception for adapter errors."""


class ConfigurationError(AdapterError):
    """Request cannot be turned into valid SQL (bad criteria key, unknown
    operator, unsupported operation)."""


class StorageEngineError(AdapterError):
    """Failure reported by MySQL, with the statement that triggered it.

    Attributes:
        sql: SQL text that was attempted
        params: Snapshot of the bound parameters
        code: MySQL error number, None when the driver gave none
    """

    def __init__(self, message: str, sql: Optional[str] = None,
                 params: Sequence[Any] = (), code: Optional[int] = None):
        super().__init__(message)
        self.sql = sql
        self.params = tuple(params)
        self.code = code

    def __str__(self) -> str:
        text = super().__str__()
        if self.sql:
            text = f"{text} [sql: {self.sql}; params: {list(self.params)}]"
        return text


class MissingTableError(StorageEngineError):
    """Statement referenced a table that does not exist."""


class LostConnectionError(StorageEngineError):
    """Connection to the server dropped; the next call reconnects."""


class DecodeError(AdapterError):
    """Stored value could not be decoded into its declared field kind."""

    def __init__(self, message: str, field: Optional[str] = None,
                 kind: Any = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.kind = kind
        self.value = value
