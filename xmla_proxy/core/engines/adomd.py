"""
ADOMD.NET backend - XMLA endpoints (Power BI Premium / Fabric, Azure Analysis Services)

pyadomd drives Microsoft.AnalysisServices.AdomdClient through pythonnet, so
both the .NET runtime and the ADOMD client DLL must be present. They are only
loaded when the first session is opened, which keeps the rest of the service
importable on machines without them.

The engine does its own credential exchange: User ID "app:<client>@<tenant>"
plus the client secret as password, EffectiveUserName for impersonation.
"""

import logging
import sys
from typing import Any, NamedTuple, Optional, Type

from xmla_proxy.core.engines.base import (
    ConnectionDescriptor,
    EngineClient,
    EngineSession,
    QueryRows,
)
from xmla_proxy.core.errors import ENGINE_CLIENT_ERROR, MODEL_QUERY_ERROR, QueryExecutionError


logger = logging.getLogger(__name__)


class AdomdBindings(NamedTuple):
    connection_class: Any
    error_response_exception: Type[BaseException]
    connection_exception: Type[BaseException]
    adomd_exception: Type[BaseException]


def _load_adomd(client_path: Optional[str]) -> AdomdBindings:
    # pythonnet resolves assemblies through sys.path
    if client_path and client_path not in sys.path:
        sys.path.append(client_path)

    from pyadomd import Pyadomd
    from Microsoft.AnalysisServices.AdomdClient import (
        AdomdConnectionException,
        AdomdErrorResponseException,
        AdomdException,
    )

    return AdomdBindings(
        connection_class=Pyadomd,
        error_response_exception=AdomdErrorResponseException,
        connection_exception=AdomdConnectionException,
        adomd_exception=AdomdException,
    )


def _error_message(error: BaseException) -> str:
    # .NET exceptions expose Message, str() may include the type name
    return getattr(error, "Message", None) or str(error)


def classify_error(error: BaseException, bindings: AdomdBindings) -> Optional[QueryExecutionError]:
    """
    Map an ADOMD exception to a QueryExecutionError.

    Returns None for anything that is not an ADOMD error, so callers can let
    it propagate as an unexpected failure.
    """
    message = _error_message(error)
    if isinstance(error, bindings.error_response_exception):
        return QueryExecutionError(MODEL_QUERY_ERROR, message)
    if isinstance(error, bindings.connection_exception):
        return QueryExecutionError(ENGINE_CLIENT_ERROR, message, connection_lost=True)
    if isinstance(error, bindings.adomd_exception):
        return QueryExecutionError(ENGINE_CLIENT_ERROR, message)
    return None


class AdomdSession(EngineSession):
    def __init__(self, connection: Any, bindings: AdomdBindings):
        self._connection = connection
        self._bindings = bindings
        self._lost = False
        self._closed = False

    def execute(self, query: str) -> QueryRows:
        cursor = self._connection.cursor()
        try:
            cursor.execute(query)
            columns = [column.name for column in cursor.description]
            rows = cursor.fetchall()
        except Exception as error:
            classified = classify_error(error, self._bindings)
            if classified is None:
                raise
            self._lost = self._lost or classified.connection_lost
            raise classified from error
        finally:
            if not cursor.is_closed:
                cursor.close()
        return QueryRows(columns=columns, rows=rows)

    def is_usable(self) -> bool:
        return not (self._lost or self._closed)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._connection.close()


class AdomdEngineClient(EngineClient):
    def __init__(self, client_path: Optional[str] = None):
        self.client_path = client_path
        self._bindings: Optional[AdomdBindings] = None

    @property
    def bindings(self) -> AdomdBindings:
        if self._bindings is None:
            self._bindings = _load_adomd(self.client_path)
        return self._bindings

    def connect(self, descriptor: ConnectionDescriptor) -> AdomdSession:
        bindings = self.bindings
        connection = bindings.connection_class(descriptor.connection_string())
        try:
            connection.open()
        except Exception:
            connection.close()
            raise
        logger.debug(f"ADOMD connection opened to {descriptor.data_source}")
        return AdomdSession(connection, bindings)
