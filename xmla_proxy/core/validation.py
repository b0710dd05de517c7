"""
VALIDATION MODULE - Turn raw headers and body into typed request parts

Purpose:
    1. Check the five connection headers, in a fixed order, first miss wins
    2. Parse the JSON body into a QueryBatchRequest
    3. Reject blank query texts before anything touches the remote engine

Nothing here has side effects: a request either comes out validated or a
RequestValidationFailure names what is wrong.
"""

from typing import List, Mapping, NamedTuple, Sequence, Tuple, Union

from pydantic import ValidationError

from xmla_proxy.core.errors import RequestValidationFailure
from xmla_proxy.core.schemas import ConnectionCoordinates, QueryBatchRequest, QueryItem


# Checked in this order, header name -> ConnectionCoordinates field
REQUIRED_HEADERS: Tuple[Tuple[str, str], ...] = (
    ("x-pbi-tenant-id", "tenant_id"),
    ("x-pbi-client-id", "client_id"),
    ("x-pbi-client-secret", "client_secret"),
    ("x-pbi-xmla-endpoint", "endpoint_url"),
    ("x-pbi-dataset-name", "dataset_name"),
)


class ValidatedRequest(NamedTuple):
    coordinates: ConnectionCoordinates
    impersonated_user: str
    batch: QueryBatchRequest


# ============================================================================
# HEADERS
# ============================================================================


def validate_headers(headers: Mapping[str, str]) -> ConnectionCoordinates:
    """
    Build ConnectionCoordinates from request headers.

    Args:
        headers: Request headers (Starlette Headers are case-insensitive,
            plain dicts must use lower-case names)

    Returns:
        ConnectionCoordinates for this request only

    Raises:
        RequestValidationFailure: on the first header that is absent or blank
    """
    values = {}
    for header, field in REQUIRED_HEADERS:
        value = headers.get(header)
        if value is None or not value.strip():
            raise RequestValidationFailure(
                f"{header} header is required", error="Invalid header"
            )
        values[field] = value
    return ConnectionCoordinates(**values)


# ============================================================================
# BODY
# ============================================================================


def format_error_location(location: Sequence[Union[str, int]]) -> str:
    """("queries", 1, "query") -> "queries[1].query" """
    path = ""
    for part in location:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def format_validation_errors(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = format_error_location(item["loc"])
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(messages)


def find_blank_queries(queries: Sequence[QueryItem], validate_all: bool = True) -> List[int]:
    """
    Return indexes of queries whose text is empty or whitespace.

    With validate_all=False only the first item is looked at, which is what
    the first versions of the proxy did.
    """
    candidates = queries if validate_all else queries[:1]
    return [index for index, item in enumerate(candidates) if not item.query.strip()]


def validate_body(body: bytes, validate_all: bool = True) -> QueryBatchRequest:
    """
    Parse and check the request body.

    Args:
        body: Raw request body
        validate_all: Blank-check every query instead of only the first one

    Returns:
        QueryBatchRequest with at least one non-blank query and an e-mail
        shaped impersonatedUserName

    Example:
        validate_body(b'{"queries": [{"query": "EVALUATE Sales"}],'
                      b' "impersonatedUserName": "jane@contoso.com"}')
    """
    if not body or not body.strip():
        raise RequestValidationFailure("Request body is required")

    try:
        batch = QueryBatchRequest.model_validate_json(body)
    except ValidationError as error:
        raise RequestValidationFailure(format_validation_errors(error)) from error

    blank = find_blank_queries(batch.queries, validate_all)
    if blank:
        raise RequestValidationFailure(
            "; ".join(f"queries[{index}].query must not be blank" for index in blank)
        )
    return batch


def validate_request(
    headers: Mapping[str, str], body: bytes, validate_all: bool = True
) -> ValidatedRequest:
    """Headers first, then body. Stops at the first failure."""
    coordinates = validate_headers(headers)
    batch = validate_body(body, validate_all=validate_all)
    return ValidatedRequest(
        coordinates=coordinates,
        impersonated_user=batch.impersonated_user_name,
        batch=batch,
    )
