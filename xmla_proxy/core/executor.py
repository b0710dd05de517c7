"""
EXECUTOR MODULE - Run a batch of queries on one open session

Purpose:
    1. Execute every query in request order, one at a time
    2. Turn each result into rows of {column: value}, or each failure into
       a (code, message) pair
    3. Keep going after a failed query; stop sending only when the session
       itself is gone

Data Flow:
    QueryBatchRequest → execute_batch() → [QuerySuccess | QueryFailure] → BatchResult
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from xmla_proxy.core.engines.base import EngineSession
from xmla_proxy.core.errors import ENGINE_CONNECTION_ERROR, QueryExecutionError
from xmla_proxy.core.schemas import QueryBatchRequest


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuerySuccess:
    rows: List[Dict[str, Any]]


@dataclass(frozen=True)
class QueryFailure:
    code: str
    message: str


QueryOutcome = Union[QuerySuccess, QueryFailure]


@dataclass
class BatchResult:
    outcomes: List[QueryOutcome] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return all(isinstance(outcome, QuerySuccess) for outcome in self.outcomes)


def execute_batch(session: EngineSession, batch: QueryBatchRequest) -> BatchResult:
    """
    Execute all queries of a batch against a single session.

    Only QueryExecutionError is converted to data. Anything else is a bug or
    an infrastructure problem and propagates to the caller.

    Args:
        session: Open session, owned by the caller (never closed here)
        batch: Validated request

    Returns:
        BatchResult with exactly one outcome per query, in request order

    Example:
        queries = [ok, broken, ok]
        → outcomes = [QuerySuccess, QueryFailure, QuerySuccess]
        → all_succeeded = False
    """
    result = BatchResult()
    total = len(batch.queries)
    connection_lost = False

    for index, item in enumerate(batch.queries):
        if connection_lost or not session.is_usable():
            # Session died on an earlier query, fail the rest without sending them
            lost = _connection_lost_failure(result)
            logger.warning(
                f"Connection lost, skipping queries {index}..{total - 1}: {lost.message}"
            )
            result.outcomes.extend(lost for _ in range(index, total))
            break

        try:
            query_rows = session.execute(item.query)
        except QueryExecutionError as error:
            logger.warning(f"Query {index} failed with {error.code}: {error.message}")
            result.outcomes.append(QueryFailure(code=error.code, message=error.message))
            connection_lost = error.connection_lost
            continue

        result.outcomes.append(QuerySuccess(rows=query_rows.as_dicts()))

    return result


def _connection_lost_failure(result: BatchResult) -> QueryFailure:
    last_failure = next(
        (o for o in reversed(result.outcomes) if isinstance(o, QueryFailure)), None
    )
    message = last_failure.message if last_failure else "Connection is no longer usable"
    return QueryFailure(code=ENGINE_CONNECTION_ERROR, message=message)
