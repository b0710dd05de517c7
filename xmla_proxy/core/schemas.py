from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, SecretStr, field_validator
from pydantic_core import PydanticCustomError


# =========================
# CONNECTION
# =========================
class ConnectionCoordinates(BaseModel):
    """Where and as whom to connect. Built from request headers, never stored."""

    tenant_id: str
    client_id: str
    client_secret: SecretStr
    endpoint_url: str
    dataset_name: str

    model_config = ConfigDict(frozen=True)


# =========================
# REQUEST
# =========================
class QueryItem(BaseModel):
    query: str

    model_config = ConfigDict(frozen=True)


class QueryBatchRequest(BaseModel):
    queries: List[QueryItem] = Field(min_length=1)
    impersonated_user_name: EmailStr = Field(alias="impersonatedUserName")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("impersonated_user_name", mode="before")
    @classmethod
    def reject_blank_user(cls, value: Any) -> Any:
        # Blank behaves like a missing field rather than a malformed address
        if isinstance(value, str) and not value.strip():
            raise PydanticCustomError("missing", "Field required")
        return value


# =========================
# RESPONSE
# =========================
class ResultTable(BaseModel):
    rows: List[Dict[str, Any]]


class QueryResult(BaseModel):
    tables: List[ResultTable]


class QueryErrorDetail(BaseModel):
    code: str
    message: str


class QueryError(BaseModel):
    error: QueryErrorDetail


class ExecuteQueriesResponse(BaseModel):
    results: List[Union[QueryResult, QueryError]]


class ErrorResponse(BaseModel):
    error: str
    detail: str
