import json
import math
from typing import Any, Dict, Tuple

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from xmla_proxy.core import schemas
from xmla_proxy.core.config import settings
from xmla_proxy.core.executor import BatchResult, QuerySuccess


# Same convention as the Power BI executeQueries API: one failed query fails the call
PARTIAL_FAILURE_STATUS = status.HTTP_400_BAD_REQUEST


def build_batch_response(result: BatchResult) -> Tuple[int, Dict[str, Any]]:
    """
    Shape a BatchResult like the executeQueries response.

    Returns:
        (status code, JSON-ready body). 200 only when every query succeeded.
    """
    results = []
    for outcome in result.outcomes:
        if isinstance(outcome, QuerySuccess):
            results.append(
                schemas.QueryResult(tables=[schemas.ResultTable(rows=outcome.rows)])
            )
        else:
            results.append(
                schemas.QueryError(
                    error=schemas.QueryErrorDetail(
                        code=outcome.code, message=outcome.message
                    )
                )
            )

    body = schemas.ExecuteQueriesResponse(results=results)
    status_code = status.HTTP_200_OK if result.all_succeeded else PARTIAL_FAILURE_STATUS
    # Decimal values must stay JSON numbers
    encoded = jsonable_encoder(body.model_dump())
    for item in encoded["results"]:
        for table in item.get("tables", []):
            table["rows"] = [
                {column: _finite_or_none(value) for column, value in row.items()}
                for row in table["rows"]
            ]
    return status_code, encoded


def _finite_or_none(value: Any) -> Any:
    # JSON has no Infinity/NaN (DAX 1/0 is Infinity)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def build_error_response(error: str, detail: str) -> Dict[str, Any]:
    return schemas.ErrorResponse(error=error, detail=detail).model_dump()


class PrettyJSONResponse(JSONResponse):
    """JSONResponse that indents its body when PRETTY_JSON is on."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=2 if settings.PRETTY_JSON else None,
        ).encode("utf-8")
