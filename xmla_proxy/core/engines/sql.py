"""
SQLAlchemy backend - the endpoint header is a database URL.

Development and tests only: point x-pbi-xmla-endpoint at "sqlite:///demo.db"
(or any URL SQLAlchemy has a driver for) and send SQL instead of DAX.
Credentials and impersonation travel inside the URL; the descriptor's other
fields are ignored.

The caller picks the URL, so any database the process can reach (local SQLite
files included) is open to whoever can call the proxy. Set
SQL_ALLOWED_URL_PREFIXES to limit the endpoints this backend accepts.
"""

import logging
from typing import Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from xmla_proxy.core.engines.base import (
    ConnectionDescriptor,
    EngineClient,
    EngineSession,
    QueryRows,
)
from xmla_proxy.core.errors import ENGINE_CLIENT_ERROR, MODEL_QUERY_ERROR, QueryExecutionError


logger = logging.getLogger(__name__)


class SqlSession(EngineSession):
    def __init__(self, engine: Engine, connection: Connection):
        self._engine = engine
        self._connection = connection
        self._closed = False

    def execute(self, query: str) -> QueryRows:
        try:
            # One transaction per query so a failed statement is rolled back
            # before the next one runs
            with self._connection.begin():
                result = self._connection.exec_driver_sql(query)
                if not result.returns_rows:
                    return QueryRows(columns=[], rows=[])
                columns = list(result.keys())
                rows = [tuple(row) for row in result]
        except DBAPIError as error:
            message = str(error.orig) if error.orig is not None else str(error)
            raise QueryExecutionError(
                MODEL_QUERY_ERROR, message, connection_lost=error.connection_invalidated
            ) from error
        except SQLAlchemyError as error:
            raise QueryExecutionError(ENGINE_CLIENT_ERROR, str(error)) from error
        return QueryRows(columns=columns, rows=rows)

    def is_usable(self) -> bool:
        return not (
            self._closed or self._connection.closed or self._connection.invalidated
        )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._connection.close()
        finally:
            self._engine.dispose()


class SqlEngineClient(EngineClient):
    def __init__(self, allowed_prefixes: Sequence[str] = ()):
        # Empty means every URL is accepted
        self.allowed_prefixes = tuple(allowed_prefixes)

    def connect(self, descriptor: ConnectionDescriptor) -> SqlSession:
        url = descriptor.data_source
        if self.allowed_prefixes and not url.startswith(self.allowed_prefixes):
            raise PermissionError(f"Endpoint {url} is not allowed for the sql backend")

        # NullPool: the connection really closes with the request
        engine = create_engine(descriptor.data_source, poolclass=NullPool)
        try:
            connection = engine.connect()
        except Exception:
            engine.dispose()
            raise
        logger.debug(
            f"SQL backend ignores EffectiveUserName={descriptor.effective_user_name}"
        )
        return SqlSession(engine, connection)
