"""
CRISTAL Core Remote — Public API
==================================
Contract for the tenant-scoped remote relational store, plus an
in-memory implementation for development and tests.
"""

from core.remote.contracts import QueryResult, RemoteError, RemoteStore
from core.remote.memory import InMemoryRemoteStore
from core.remote.tables import NUMERIC_ID_TABLES, Table

__all__ = [
    "QueryResult",
    "RemoteError",
    "RemoteStore",
    "InMemoryRemoteStore",
    "Table",
    "NUMERIC_ID_TABLES",
]
