"""Operation classification from the leading SQL keyword."""

import re
from enum import Enum


class OperationKind(str, Enum):
    """Classified SQL verb driving permission checks."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    TRUNCATE = "TRUNCATE"
    CREATE = "CREATE"
    ALTER = "ALTER"
    DROP = "DROP"
    SHOW = "SHOW"
    DESCRIBE = "DESCRIBE"
    EXPLAIN = "EXPLAIN"
    UNKNOWN = "UNKNOWN"


# Operations returning a result set rather than an affected-row count.
ROW_RETURNING_OPERATIONS = frozenset(
    {
        OperationKind.SELECT,
        OperationKind.SHOW,
        OperationKind.DESCRIBE,
        OperationKind.EXPLAIN,
    }
)

# Operations gated by a per-operation permission flag.
MUTATING_OPERATIONS = frozenset(
    {
        OperationKind.INSERT,
        OperationKind.UPDATE,
        OperationKind.DELETE,
        OperationKind.TRUNCATE,
    }
)

_ALIASES = {
    "DESC": OperationKind.DESCRIBE,
    "WITH": OperationKind.SELECT,
}

_LEADING_TOKEN = re.compile(r"^[\s(]*([A-Za-z]+)")

# A mutating verb opening a CTE body or following the CTE list.
_CTE_MUTATION = re.compile(r"[()]\s*(INSERT|UPDATE|DELETE)\b", re.IGNORECASE)


def classify_operation(query: str) -> OperationKind:
    """Classify a query by its first keyword token.

    A WITH statement whose CTE bodies or main statement modify data classifies
    as the first mutating verb found.

    Example:
        >>> classify_operation("  select * from t")
        <OperationKind.SELECT: 'SELECT'>
        >>> classify_operation("VACUUM t")
        <OperationKind.UNKNOWN: 'UNKNOWN'>
        >>> classify_operation("WITH d AS (DELETE FROM t RETURNING *) SELECT * FROM d")
        <OperationKind.DELETE: 'DELETE'>
    """
    match = _LEADING_TOKEN.match(query or "")
    if not match:
        return OperationKind.UNKNOWN
    token = match.group(1).upper()
    if token == "WITH":
        mutation = _CTE_MUTATION.search(query)
        if mutation:
            return OperationKind(mutation.group(1).upper())
    if token in _ALIASES:
        return _ALIASES[token]
    try:
        return OperationKind(token)
    except ValueError:
        return OperationKind.UNKNOWN


def normalize_operation(operation: "str | OperationKind") -> str:
    """Return the upper-cased operation name for permission lookups."""
    if isinstance(operation, OperationKind):
        return operation.value
    return str(operation or "").strip().upper()
