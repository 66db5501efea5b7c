"""Data Abstraction Layer (DAL) for the SQL gateway.

This package exposes the backend dialect interface and the connection pool
shared by every tool handler.
"""

from dal.dialect import Dialect, ErrorClass, ExecuteResult, QueryConnection, get_dialect
from dal.errors import (
    BackendQueryError,
    DatabaseConnectionError,
    PoolSaturatedError,
    RetryExhaustedError,
)
from dal.pool import ConnectionPool, PoolEntry, PoolStats

__all__ = [
    "BackendQueryError",
    "ConnectionPool",
    "DatabaseConnectionError",
    "Dialect",
    "ErrorClass",
    "ExecuteResult",
    "PoolEntry",
    "PoolSaturatedError",
    "PoolStats",
    "QueryConnection",
    "RetryExhaustedError",
    "get_dialect",
]
