"""
Engine client interface.

The proxy only needs three things from an analytical engine: open a session
from a ConnectionDescriptor, run one query text on it, and close it. Backends
implement EngineClient/EngineSession and raise QueryExecutionError for any
per-query failure.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


_NEEDS_QUOTING = re.compile(r"[;\"']|^\s|\s$")


def quote_connection_value(value: str) -> str:
    """Quote a connection string value the way OLE DB / ADOMD.NET parse it."""
    if not _NEEDS_QUOTING.search(value):
        return value
    return '"' + value.replace('"', '""') + '"'


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Everything a backend needs to open a session for one request."""

    data_source: str
    user_id: str
    password: str = field(repr=False)
    catalog: str
    effective_user_name: str

    def connection_string(self) -> str:
        parts = [
            ("Data Source", self.data_source),
            ("User ID", self.user_id),
            ("Password", self.password),
            ("Catalog", self.catalog),
            ("EffectiveUserName", self.effective_user_name),
        ]
        return ";".join(f"{key}={quote_connection_value(value)}" for key, value in parts)


@dataclass
class QueryRows:
    """Result of one query: column names in schema order and raw row tuples."""

    columns: List[str]
    rows: List[Tuple[Any, ...]]

    def as_dicts(self) -> List[Dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.rows]


class EngineSession:
    """One live session. Not safe for concurrent queries."""

    def execute(self, query: str) -> QueryRows:
        raise NotImplementedError("execute must be implemented by subclasses")

    def is_usable(self) -> bool:
        return True

    def close(self) -> None:
        raise NotImplementedError("close must be implemented by subclasses")


class EngineClient:
    """Opens sessions. Stateless, shared between requests."""

    def connect(self, descriptor: ConnectionDescriptor) -> EngineSession:
        raise NotImplementedError("connect must be implemented by subclasses")
