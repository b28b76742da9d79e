"""
Data models for the MySQL adapter.
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import List, Dict, Any, Optional, Tuple, Mapping


class FieldKind(Enum):
    """Semantic field kinds, independent of the physical column type."""
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DOUBLE = "double"
    DECIMAL = "decimal"      # exact numbers, stored as decimal text
    DATETIME = "datetime"
    LIST = "list"            # stored as JSON text
    MAP = "map"              # stored as JSON text
    REFERENCE = "reference"  # id of a row in another table


@dataclass(frozen=True)
class FieldDescriptor:
    """Declared field of a schema."""
    name: str
    kind: FieldKind = FieldKind.STRING


@dataclass(frozen=True)
class Schema:
    """Table name plus its ordered field descriptors.

    A schema without fields means the table layout is unknown; operations then
    fall back to the keys found in the rows themselves.
    """
    name: str
    fields: Tuple[FieldDescriptor, ...] = ()
    id_field: str = "id"

    def __post_init__(self):
        # Accept lists from callers but keep the stored value immutable
        object.__setattr__(self, "fields", tuple(self.fields))

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> Optional[FieldDescriptor]:
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        return None


@dataclass(frozen=True)
class Pagination:
    """Result window; a negative length means unbounded."""
    length: int = -1
    offset: int = 0


def _freeze(value: Any) -> Any:
    """Recursively turn dicts into read-only mappings and lists into tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class Query:
    """Immutable query descriptor handed to the adapter.

    Built through QueryBuilder; every sub-structure is read-only once built.
    Criteria keys take the form ``field`` or ``field!operator``; the reserved
    ``!or`` key holds an ordered sequence of single-entry criteria.
    """
    schema: Schema
    criteria: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    sorts: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    pagination: Pagination = field(default_factory=Pagination)
    sets: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    inserts: Tuple[Mapping[str, Any], ...] = ()

    @property
    def table(self) -> str:
        return self.schema.name


class QueryBuilder:
    """Collects query parts and produces an immutable Query.

    Example:
        query = (QueryBuilder(schema)
                 .find({"foo": 2})
                 .sort({"bar": 1})
                 .limit(5).skip(2)
                 .build())
    """

    def __init__(self, schema: Schema):
        self._schema = schema
        self._criteria: Dict[str, Any] = {}
        self._sorts: Dict[str, Any] = {}
        self._length = -1
        self._offset = 0
        self._sets: Dict[str, Any] = {}
        self._inserts: List[Dict[str, Any]] = []

    def find(self, criteria: Optional[Mapping[str, Any]] = None) -> "QueryBuilder":
        self._criteria.update(criteria or {})
        return self

    def sort(self, sorts: Mapping[str, Any]) -> "QueryBuilder":
        self._sorts.update(sorts)
        return self

    def limit(self, length: int) -> "QueryBuilder":
        self._length = length
        return self

    def skip(self, offset: int) -> "QueryBuilder":
        self._offset = offset
        return self

    def set(self, key_or_values, value: Any = None) -> "QueryBuilder":
        """Add set-assignments, either as a mapping or a single key/value."""
        if isinstance(key_or_values, Mapping):
            self._sets.update(key_or_values)
        else:
            self._sets[key_or_values] = value
        return self

    def insert(self, row: Mapping[str, Any]) -> "QueryBuilder":
        self._inserts.append(dict(row))
        return self

    def build(self) -> Query:
        return Query(
            schema=self._schema,
            criteria=_freeze(self._criteria),
            sorts=MappingProxyType(dict(self._sorts)),
            pagination=Pagination(self._length, self._offset),
            sets=MappingProxyType(dict(self._sets)),
            inserts=tuple(MappingProxyType(dict(row)) for row in self._inserts),
        )


@dataclass
class ExecutionResult:
    """Raw outcome of one executed statement."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    fields: List[str] = field(default_factory=list)
    affected_rows: int = 0
    last_insert_id: Optional[int] = None


@dataclass
class InsertResult:
    """Outcome of a multi-row insert."""
    affected: int
    rows: Tuple[Dict[str, Any], ...] = ()
