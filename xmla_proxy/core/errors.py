from typing import Optional

from fastapi import status


# =========================
# Request level errors
# =========================
class ProxyError(Exception):
    """Error that ends the request with its own status and {"error", "detail"} body."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "An unhandled error occurred"

    def __init__(self, detail: str, error: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if error is not None:
            self.error = error


class RequestValidationFailure(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Invalid body"


class EngineConnectionError(ProxyError):
    """Opening the session to the analytical engine failed."""


# =========================
# Per-query errors
# =========================
MODEL_QUERY_ERROR = "ModelQueryExecutionError"
ENGINE_CLIENT_ERROR = "EngineClientError"
ENGINE_CONNECTION_ERROR = "EngineConnectionError"


class QueryExecutionError(Exception):
    """
    A single query failed on the remote engine.

    Args:
        code: MODEL_QUERY_ERROR for errors reported by the engine itself,
            ENGINE_CLIENT_ERROR for client/protocol failures
        message: Human readable error text
        connection_lost: The session cannot run further queries
    """

    def __init__(self, code: str, message: str, connection_lost: bool = False):
        super().__init__(message)
        self.code = code
        self.message = message
        self.connection_lost = connection_lost
