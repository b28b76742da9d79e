"""
Criteria compilation into parameterized MySQL predicates.

Criteria keys are ``field`` or ``field!operator``. The reserved ``!or`` key
holds an ordered list of single-entry criteria joined with OR inside one
parenthesized group.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from storage.exceptions import ConfigurationError

OR_KEY = "!or"
OPERATOR_SEPARATOR = "!"


class Operator(Enum):
    """Supported comparison operators."""
    EQ = "eq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    LIKE = "like"

    @property
    def sql(self) -> str:
        return _OPERATOR_SQL[self]

    @classmethod
    def parse(cls, name: str) -> "Operator":
        try:
            return cls(name)
        except ValueError:
            supported = ", ".join(op.value for op in cls)
            raise ConfigurationError(f"Unknown operator '{name}' (supported: {supported})") from None


_OPERATOR_SQL = {
    Operator.EQ: "=",
    Operator.GT: ">",
    Operator.LT: "<",
    Operator.GTE: ">=",
    Operator.LTE: "<=",
    Operator.LIKE: "LIKE",
}


def quote_identifier(name: str) -> str:
    """Quote a table or column name with backticks.

    Dotted names are quoted per part (``db.table`` -> ```db`.`table```).
    Percent signs are doubled because pymysql formats the statement with
    ``%`` before sending it.
    """
    if not name:
        raise ConfigurationError("Identifier must not be empty")
    parts = str(name).split(".")
    quoted = ["`" + part.replace("`", "``").replace("%", "%%") + "`" for part in parts]
    return ".".join(quoted)


def parse_key(key: str) -> Tuple[str, Operator]:
    """Split a criteria key into its field and operator.

    Raises:
        ConfigurationError: Key is malformed or names an unknown operator
    """
    parts = key.split(OPERATOR_SEPARATOR)
    if len(parts) > 2 or not parts[0]:
        raise ConfigurationError(f"Malformed criteria key: '{key}'")
    if len(parts) == 1:
        return parts[0], Operator.EQ
    return parts[0], Operator.parse(parts[1])


def _compile_or_group(entries: Any, encode: Optional[Callable[[Any], Any]]) -> Tuple[str, List[Any]]:
    if isinstance(entries, (str, bytes, Mapping)) or not isinstance(entries, (list, tuple)):
        raise ConfigurationError(f"'{OR_KEY}' expects a list of criteria")
    if not entries:
        raise ConfigurationError(f"'{OR_KEY}' expects at least one criteria")

    clauses = []
    params: List[Any] = []
    for entry in entries:
        if not isinstance(entry, Mapping) or len(entry) != 1:
            raise ConfigurationError(f"Each '{OR_KEY}' entry must hold exactly one criteria: {entry!r}")
        text, entry_params = compile_criteria(entry, encode)
        clauses.append(text)
        params.extend(entry_params)

    return "(" + " OR ".join(clauses) + ")", params


def compile_criteria(criteria: Optional[Mapping[str, Any]],
                     encode: Optional[Callable[[Any], Any]] = None) -> Tuple[Optional[str], List[Any]]:
    """Compile criteria into a predicate and its bind parameters.

    Args:
        criteria: Mapping of criteria keys to values
        encode: Optional hook applied to every bound value

    Returns:
        Tuple of (predicate text without WHERE, params); the text is None for
        empty criteria
    """
    if not criteria:
        return None, []

    clauses = []
    params: List[Any] = []
    seen: Dict[Tuple[str, Operator], str] = {}

    for key, value in criteria.items():
        if key == OR_KEY:
            text, group_params = _compile_or_group(value, encode)
            clauses.append(text)
            params.extend(group_params)
            continue

        field, operator = parse_key(key)
        if (field, operator) in seen:
            raise ConfigurationError(
                f"Criteria keys '{seen[(field, operator)]}' and '{key}' target the same condition"
            )
        seen[(field, operator)] = key

        if operator is Operator.LIKE:
            value = f"%{value}%"
        elif encode is not None:
            value = encode(value)

        clauses.append(f"{quote_identifier(field)} {operator.sql} %s")
        params.append(value)

    return " AND ".join(clauses), params
